"""
MongoDB aggregation optimization and index management toolkit.
"""

__version__ = "1.0.0"
