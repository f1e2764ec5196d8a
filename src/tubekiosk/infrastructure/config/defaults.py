"""Hardcoded default configuration values."""

from __future__ import annotations

from typing import Any

DEFAULT_CONFIG: dict[str, Any] = {
    "app_name": "tubekiosk",
    "environment": "dev",
    "server": {
        "host": "0.0.0.0",
        "port": None,  # Resolved from config.json 'port', else 3000
    },
    "storage": {
        "data_dir": "./data",
    },
    "http": {
        "timeout_seconds": 15.0,
        "user_agent": "Tubekiosk/0.1.0",
    },
    "youtube": {
        "api_key": None,
        "credentials_path": "./credentials.json",
    },
    "providers": {
        "failure_threshold": 3,
        "cooldown_seconds": 300.0,
    },
    "player": {
        "server_url": "http://127.0.0.1:3000",
        "preload_lead_seconds": 8.0,
        "max_item_seconds": 300.0,
        "retry_seconds": 10.0,
    },
    "logging": {
        "level": "INFO",
        "format": None,  # Derived from environment in schema.py
    },
}

# Initial content of the operator-edited selection document (config.json).
DEFAULT_SELECTION_DOCUMENT: dict[str, Any] = {
    "channels": [],
    "maxAgeYears": 2,
    "minViews": 0,
    "playedResetDays": 60,
    "cacheTtlMinutes": 15,
    "maxSearchResults": 100,
    "attemptsBeforeRelax": 6,
    "minDurationSeconds": 0,
}
