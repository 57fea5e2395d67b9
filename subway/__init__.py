"""Subway line section service."""

__version__ = "0.1.0"
