"""Medal tally: competition scoring service with a public scoreboard."""

__version__ = "1.0.0"
