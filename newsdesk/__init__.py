"""RSS news ingestion and trending selection."""

__version__ = "1.0.0"
