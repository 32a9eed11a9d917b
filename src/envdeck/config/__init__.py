"""Configuration loading and defaults for envdeck projects.

Main components:
- ConfigLoader (envdeck.config.loader): load envdeck.yaml, resolve dev center
  settings for an environment, read progress tracking switches
- Default values and environment config paths (envdeck.config.defaults)
"""
