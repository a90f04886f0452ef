"""HTTP API for the medal tally service."""
