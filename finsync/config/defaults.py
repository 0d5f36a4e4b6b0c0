# FinSync Default Configuration
# Full default configuration as Python dict and YAML generator

import copy
from typing import Any

import yaml

DEFAULT_CONFIG: dict[str, Any] = {
    "api": {
        "base_url": "https://api.example.com/api",
        "timeout_seconds": 30,
        "token_env": "FINSYNC_TOKEN",
        "verify_tls": True,
    },
    "storage": {
        "database_path": "~/.local/share/finsync/finsync.db",
        "state_path": "~/.config/finsync/.sync_state.yaml",
    },
    "scheduler": {
        "interval_seconds": 120,
        "on_demand_delay_seconds": 5,
        "requires_network": True,
        "requires_idle": True,
        "backoff_base_seconds": 30,
        "backoff_max_seconds": 1800,
    },
    "output": {
        "verbose": False,
        "colored": True,
        "log_level": "INFO",
        "log_file": None,
    },
}


def get_default_config() -> dict[str, Any]:
    """Deep copy of the defaults, safe to mutate."""
    return copy.deepcopy(DEFAULT_CONFIG)


def generate_default_config() -> str:
    """Generate default configuration as YAML string with comments."""
    header = """# FinSync Configuration
# Version: 1.0
#
# Offline-first sync of books, wallets, categories and transactions
# between the local store and the finance API.
#
# The bearer token is read from the environment variable named by
# api.token_env; api.token is only a fallback.

"""
    return header + yaml.dump(DEFAULT_CONFIG, default_flow_style=False, sort_keys=False, allow_unicode=True)
