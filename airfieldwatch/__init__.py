"""Aircraft geospatial tracking and radar-rendering engine."""

__version__ = "0.1.0"
