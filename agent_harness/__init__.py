"""Console harness for hosted AI agent services."""

__version__ = "0.1.0"
