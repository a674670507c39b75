"""
Inkmark drawing markup and annotation engine.
"""

__version__ = "0.1.0"
