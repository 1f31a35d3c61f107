"""Availability search and multi-service booking orchestrator for voice booking agents."""

__version__ = "0.3.0"
