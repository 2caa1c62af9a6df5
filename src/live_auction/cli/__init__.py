"""Command-line client for the live auction API."""
