import json
import os
from pathlib import Path
from typing import Any, Dict, Optional

from novadesk.core.logger import logger

DEFAULT_CONFIG_PATH = Path(__file__).resolve().parents[2] / "data" / "hotel_config.json"

REQUIRED_KEYS = ("hotel_name", "welcome", "checkin_instructions", "info", "contact")

def load_hotel_config(path: Optional[str] = None) -> Dict[str, Any]:
    """
    Loads the static hotel texts (welcome, info, contact...) from JSON.
    Raises FileNotFoundError if the file is missing, ValueError if it is invalid.
    """
    config_path = path or str(DEFAULT_CONFIG_PATH)
    if not os.path.exists(config_path):
        logger.critical(f"❌ Hotel config '{config_path}' not found")
        raise FileNotFoundError(f"Configuration file not found at {config_path}")

    try:
        with open(config_path, 'r', encoding='utf-8') as f:
            config = json.load(f)
    except json.JSONDecodeError as e:
        logger.critical(f"❌ Invalid JSON in hotel config: {e}")
        raise ValueError(f"Invalid JSON in config file: {e}")

    missing = [key for key in REQUIRED_KEYS if key not in config]
    if missing:
        raise ValueError(f"Hotel config is missing keys: {', '.join(missing)}")

    logger.info(f"✅ Hotel config loaded for: {config.get('hotel_name')}")
    return config

def format_lines(title: str, lines) -> str:
    """Renders a title followed by bullet lines, as used by the info/contact replies."""
    return "\n".join([title] + [f"• {line}" for line in lines])
