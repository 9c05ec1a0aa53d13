"""Recipe discovery and meal planning backend."""

__version__ = "0.1.0"
