"""Sewa device gateway: maps call-button webhooks onto queue submissions."""

__version__ = "1.0.0"
