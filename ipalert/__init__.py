"""IP Alert - public address change and connectivity alerts."""

__version__ = "0.1.0"
