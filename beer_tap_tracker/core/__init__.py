"""
Core modules for Beer Tap Tracker.

This package contains spend pricing, timestamp handling, the error
taxonomy and the dispenser lifecycle manager.
"""
