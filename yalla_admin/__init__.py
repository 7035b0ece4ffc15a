"""Yalla Business Admin backend"""

__version__ = "1.0.0"
