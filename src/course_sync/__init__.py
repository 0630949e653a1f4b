"""Keep learning-platform courses in sync with GitHub repositories."""

__version__ = "1.0.0"
