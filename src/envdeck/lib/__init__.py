"""Shared utilities for envdeck."""
