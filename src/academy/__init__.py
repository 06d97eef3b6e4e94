"""Course access service: login codes, sessions and purchase recording."""

__version__ = "0.1.0"
