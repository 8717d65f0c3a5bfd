"""Command-line interface for rdstry."""
