"""
Content operations for YouTube creators: channel discovery, similar-channel
matching, and script generation with quality and contract checks.
"""
__version__ = "0.1.0"
