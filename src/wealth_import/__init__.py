"""
Statement file import: CSV, OFX/QFX and QIF exports into accounts,
transactions and holdings.
"""

__version__ = "0.1.0"
