"""Centralised path constants for the reminder service."""

from pathlib import Path

# Project root is 2 levels up from this file (src/paths.py -> project root)
PROJECT_ROOT = Path(__file__).resolve().parent.parent

# Optional dotenv file read by the settings classes and the service entry point
ENV_FILE = PROJECT_ROOT / ".env"
