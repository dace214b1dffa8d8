"""PaperTrade virtual trading backend."""

__version__ = "1.0.0"
