"""papertrade - paper trading with contests, derivatives and achievements."""

__version__ = "0.1.0"
