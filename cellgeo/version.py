"""Version information for cellgeo."""

__version__ = "0.1.0"
