"""Command-line interface for envdeck."""
