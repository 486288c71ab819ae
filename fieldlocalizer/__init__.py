"""Particle-filter localization of a soccer robot from field markings."""

__version__ = "0.1.0"
__all__ = ["amcl", "field", "model", "pattern", "shooting", "smoothing"]