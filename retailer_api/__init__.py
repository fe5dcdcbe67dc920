# retailer_api/__init__.py
"""Retailer credential service: registration, login, profile and password recovery."""

__version__ = "1.0.0"
