"""Position feed ingestors for airfieldwatch."""

from .adsb import ADSBIngestor

__all__ = ["ADSBIngestor"]
