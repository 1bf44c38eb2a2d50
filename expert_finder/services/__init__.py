"""Outbound clients and storage used by the bot and the web tab API."""
