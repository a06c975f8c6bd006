"""
In-memory storage for dispensers and their usage periods.
"""
