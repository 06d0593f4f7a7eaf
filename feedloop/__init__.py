"""feedloop - RSS/Atom aggregator with incremental polling."""

__version__ = "0.1.0"
