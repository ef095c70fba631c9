"""Double opt-in mailing list subscription service."""

__version__ = "0.5.4"
