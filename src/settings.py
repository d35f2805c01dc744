"""Static configuration for rollcall.

All user-editable settings (campaigns, simulation trial counts, logging)
live in a single JSON file for quick edits without touching Python.
"""

import json
import os

from dotenv import load_dotenv

from core.config import build_campaigns, build_simulation_config

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))

# A .env file may point at a different config (ROLLCALL_CONFIG) or database
# (ROLLCALL_DB_PATH) without editing the JSON.
load_dotenv(os.path.join(PROJECT_ROOT, ".env"))

CONFIG_PATH = os.getenv("ROLLCALL_CONFIG", os.path.join(PROJECT_ROOT, "config.json"))


def _load_json_config() -> dict:
    """Load config.json with a flat, user-friendly schema."""

    if not os.path.exists(CONFIG_PATH):
        raise FileNotFoundError(f"Config file not found: {CONFIG_PATH}")

    with open(CONFIG_PATH, "r", encoding="utf-8") as handle:
        return json.load(handle)


def _resolve_path(path: str) -> str:
    if os.path.isabs(path):
        return path
    return os.path.join(PROJECT_ROOT, path)


_CONFIG = _load_json_config()

# Expose the raw config for modules that need structured access.
CONFIG = _CONFIG

# Where to store the SQLite database.
DB_PATH = _resolve_path(os.getenv("ROLLCALL_DB_PATH") or _CONFIG.get("database_path", "rollcall.db"))

# Transcripts are looked up by filename inside this directory.
CHATLOGS_DIR = _resolve_path(_CONFIG.get("chatlogs_dir", "chatlogs"))

# Campaigns, each with its transcript filename, timezone offset and aliases.
CAMPAIGNS = build_campaigns(_CONFIG.get("campaigns", {}))

# Trial counts for odds, luck, and best/worst roll searches.
SIMULATION = build_simulation_config(_CONFIG.get("simulation", {}))

# Logging configuration (optional).
LOGGING = _CONFIG.get("logging", {})
