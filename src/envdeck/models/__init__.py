"""Data models for envdeck."""
