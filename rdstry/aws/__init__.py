"""AWS session, credential and RDS API helpers."""
