"""Publication-grounded retrieval for a researcher's corpus."""

__version__ = "0.1.0"
