"""HTTP service answering whether a latitude/longitude lies on water."""

__version__ = "1.0.0"
