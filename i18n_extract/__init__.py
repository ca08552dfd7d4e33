"""Extract user-facing strings from Angular sources into translation keys."""

__version__ = "0.1.0"
