"""PDF split and image-to-PDF tools."""

__version__ = "0.1.0"
