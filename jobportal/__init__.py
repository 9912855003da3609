"""Job portal identity and accountability core."""

__version__ = "1.0.0"
