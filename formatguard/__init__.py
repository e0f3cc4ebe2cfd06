"""formatguard: keep pull request formatting suggestions in sync with a formatter."""

__version__ = "0.1.0"
