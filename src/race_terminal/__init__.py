"""Race Terminal: a slash-command session shell for Formula 1 data."""

__version__ = "1.0.0"
