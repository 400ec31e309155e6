"""Flowboard admin authentication: passwords, TOTP two-factor and recovery codes."""

__version__ = "0.1.0"
