"""Shared helpers for rdstry."""
