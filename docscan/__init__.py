# (c) Copyright Datacraft, 2026
"""Command-line document scanning through SANE and eSCL devices."""
__version__ = '0.1.0'
