"""
Settings loading and logging setup.
"""
