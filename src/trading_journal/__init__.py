"""Trade performance analytics and setup-quality scoring for a trading journal."""

__version__ = "0.1.0"
