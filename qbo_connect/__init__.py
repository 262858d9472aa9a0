"""QuickBooks Online OAuth connection service."""

__version__ = "0.1.0"
