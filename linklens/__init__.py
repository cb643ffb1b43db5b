"""LinkLens viewer engagement and link performance engine."""

__version__ = "0.1.0"
