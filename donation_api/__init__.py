"""Donation Events API — telemetry intake for the browser extension."""

__version__ = "1.0.0"
