"""
EditionScout

Book metadata search, merge and edition grouping for author catalogs.
"""

__version__ = "0.3.0"
