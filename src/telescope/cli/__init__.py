"""Command-line interface for telescope."""
