"""OnAir live audience presence and engagement backend."""

__version__ = "1.0.0"
