"""Relay bot connecting Telegram users to a small pool of admins, with an AI stand-in."""

__version__ = "1.0.0"
