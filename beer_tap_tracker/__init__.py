"""
Beer Tap Tracker.

Tracks beer dispensers, their open/close periods and what they cost.
"""

__version__ = "0.1.0"
