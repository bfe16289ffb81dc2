"""Clinical safety checks and alerting at the point of prescribing."""

__version__ = "0.1.0"
