"""Dress rental fulfillment service."""
