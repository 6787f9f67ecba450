"""Plan scheduling and progression engine for running training plans."""

__version__ = "0.1.0"
