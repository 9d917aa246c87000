"""
Storm Alert Filter

Monitors National Weather Service alerts for a location, filters them
against user preferences and announces new critical alerts exactly once.
"""

__version__ = "0.1.0"
__author__ = "Storm Alert Filter Team"
