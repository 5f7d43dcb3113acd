"""
Core helpers: errors, logging setup and small utilities.
"""
