"""File conversion job engine."""

__version__ = "0.3.0"
