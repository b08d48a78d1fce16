import asyncio
import logging
import os
import sys
from functools import lru_cache, wraps
from pathlib import Path
import yaml
from colorama import init, Fore, Style

# Init colorama for Windows support
init()

DEFAULT_SETTINGS_PATH = "config/settings.yaml"


class ColoredFormatter(logging.Formatter):
    """
    Custom formatter to add colors to log levels.
    """
    COLORS = {
        logging.DEBUG: Fore.CYAN,
        logging.INFO: Fore.GREEN,
        logging.WARNING: Fore.YELLOW,
        logging.ERROR: Fore.RED,
        logging.CRITICAL: Fore.RED + Style.BRIGHT,
    }

    def format(self, record):
        color = self.COLORS.get(record.levelno, Fore.WHITE)
        message = super().format(record)
        return f"{color}{message}{Style.RESET_ALL}"


def setup_logger(name: str = "company_search", log_level: int = logging.INFO) -> logging.Logger:
    """
    Sets up a logger with colored console and file handlers.
    """
    logger = logging.getLogger(name)
    logger.setLevel(log_level)

    if logger.handlers:
        return logger

    # File Handler (No Colors)
    log_dir = Path("logs")
    log_dir.mkdir(exist_ok=True)
    file_formatter = logging.Formatter(
        '%(asctime)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )
    file_handler = logging.FileHandler(log_dir / "company_search.log", encoding="utf-8")
    file_handler.setFormatter(file_formatter)
    logger.addHandler(file_handler)

    # Console Handler (Colored, stderr)
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(ColoredFormatter('%(asctime)s - %(levelname)s - %(message)s', datefmt='%H:%M:%S'))
    logger.addHandler(console_handler)

    return logger


logger = setup_logger()


@lru_cache()
def load_settings(path: str = None) -> dict:
    """
    Loads YAML settings once and caches them for reuse.
    """
    settings_path = Path(path or os.getenv("COMPANY_SEARCH_SETTINGS", DEFAULT_SETTINGS_PATH))
    if not settings_path.exists():
        return {}

    try:
        with settings_path.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
            return data
    except (OSError, yaml.YAMLError) as exc:
        logger.warning(f"Failed to load {settings_path}, using defaults: {exc}")
        return {}


def section(settings: dict, name: str) -> dict:
    """Returns a nested settings block, tolerating missing or null entries."""
    value = (settings or {}).get(name)
    return value if isinstance(value, dict) else {}


def with_timeout(seconds: float):
    """
    Returns a wrapper that bounds an async callable to `seconds`.

    Expiry cancels the wrapped call and raises asyncio.TimeoutError, so callers
    handle it exactly like a transport error.
    """
    def decorate(func):
        @wraps(func)
        async def runner(*args, **kwargs):
            return await asyncio.wait_for(func(*args, **kwargs), timeout=seconds)
        return runner
    return decorate
