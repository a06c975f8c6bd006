"""
HTTP API for Beer Tap Tracker.

Exposes dispenser creation, status changes and spending reports.
"""

from .app import create_app

__all__ = ["create_app"]
