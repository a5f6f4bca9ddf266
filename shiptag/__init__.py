"""Version-tag and multi-platform release automation."""

__version__ = "0.3.0"
