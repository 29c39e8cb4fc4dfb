"""
Environment configuration and interval rules
"""

import os
import math
import logging
from dataclasses import dataclass
from typing import List, Union

from dotenv import load_dotenv


logger = logging.getLogger(__name__)

MIN_INTERVAL_MS = 750
MAX_INTERVAL_MS = 600000
DEFAULT_INTERVAL_MS = 1500
SAFE_INTERVAL_MS = 1500
SLOW_INTERVAL_MS = 30000

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
LOG_DATEFMT = '%Y-%m-%d %H:%M:%S'


def _parse_interval(value: Union[str, int, float, None]):
    """Parse like parseInt: leading integer digits, None when unparsable"""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, float) and not math.isfinite(value):
        return None
    if isinstance(value, (int, float)):
        return int(value)
    text = str(value).strip()
    digits = ''
    for index, char in enumerate(text):
        if char.isdigit() or (index == 0 and char in '+-'):
            digits += char
        else:
            break
    try:
        return int(digits)
    except ValueError:
        return None


def clamp_interval(value: Union[str, int, float, None]) -> int:
    """Clamp an interval in ms to [750, 600000], 1500 when not a number"""
    parsed = _parse_interval(value)
    if parsed is None:
        return DEFAULT_INTERVAL_MS
    if parsed < MIN_INTERVAL_MS:
        return MIN_INTERVAL_MS
    if parsed > MAX_INTERVAL_MS:
        return MAX_INTERVAL_MS
    return parsed


def interval_warnings(value: Union[str, int, float, None]) -> List[str]:
    """Advisories shown next to the interval input"""
    parsed = _parse_interval(value)
    if parsed is None:
        return ["Please enter a valid number."]

    warnings = []
    if MIN_INTERVAL_MS <= parsed < SAFE_INTERVAL_MS:
        warnings.append("Warning: Intervals below 1500ms may risk your account.")
    if parsed > SLOW_INTERVAL_MS:
        warnings.append("Warning: Intervals above 30 seconds will take a long time.")
    return warnings


@dataclass
class Settings:
    """Process settings read from the environment"""
    log_level: str = 'INFO'
    discord_token: str = ''
    api_base: str = 'https://discord.com/api/v9'
    store_path: str = 'data/deleter.db'
    report_every: float = 1.0
    request_timeout: float = 10.0


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning(f"Ignoring invalid {name}={raw!r}, using {default}")
        return default


def load_settings() -> Settings:
    """Load .env and read the process settings"""
    load_dotenv()
    return Settings(
        log_level=os.getenv('LOG_LEVEL', 'INFO').upper(),
        discord_token=os.getenv('DISCORD_TOKEN', ''),
        api_base=os.getenv('DISCORD_API_BASE', 'https://discord.com/api/v9').rstrip('/'),
        store_path=os.getenv('DELETER_STORE_PATH', 'data/deleter.db'),
        report_every=_float_env('DELETER_REPORT_EVERY', 1.0),
        request_timeout=_float_env('DELETER_REQUEST_TIMEOUT', 10.0),
    )


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format=LOG_FORMAT,
        datefmt=LOG_DATEFMT
    )
