"""Shared utilities for telescope."""
