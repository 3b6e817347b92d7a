"""Tournament Ledger - owner-governed tournament lifecycle."""

__version__ = "1.0.0"
