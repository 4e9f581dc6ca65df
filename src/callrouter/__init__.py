"""Inbound call routing service for CRM phone lines."""

__version__ = "0.1.0"
