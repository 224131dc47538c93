"""Delphi clerk: Telegram bot for submitting Reads and AF posts to the Delphi CMS."""

__version__ = "0.1.0"
