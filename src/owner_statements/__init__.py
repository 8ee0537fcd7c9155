"""Owner payout statement calculation engine for short-term-rental properties."""

__version__ = "0.1.0"
