"""Project Dashboard status server and project aggregation engine."""

__all__ = ["__version__"]

__version__ = "0.1.0"
