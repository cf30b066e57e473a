"""Open311-style civic service request API."""

__version__ = "0.1.0"
