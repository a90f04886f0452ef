"""Recurring maintenance jobs for the medal tally service."""
