"""Kitchen booking and dynamic pricing engine."""

__version__ = "0.1.0"
