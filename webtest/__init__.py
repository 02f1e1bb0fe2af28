"""
Interactive capture and playback engine for browser-automation tests.
"""

__version__ = "0.1.0"
