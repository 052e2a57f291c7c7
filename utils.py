# utils.py
"""
Utility functions for the motion core.

This module provides helpers that are used across the physics and
modulation modules but do not belong to any one of them: logging setup,
configuration loading, and the fail-fast validation used for
configuration values.
"""
import logging
import logging.handlers
import json
import math
import os
from typing import Dict, Any, Optional

# --- Data Contracts ---
#
# setup_logging(config: Dict[str, Any]) -> None:
#   - Inputs:
#     - config: A dictionary with an optional "logging" key holding
#       "level", "format", and "log_file" sub-keys. A null "log_file"
#       disables the file handler.
#   - Outputs: None
#   - Side Effects: Configures the root Python logger.
#
# require_*(name, ...) -> float:
#   - Outputs: The validated value as a float.
#   - Side Effects: Logs at CRITICAL and raises ValueError when the value
#     violates its constraint. Configuration errors never reach a tick.

def setup_logging(config: Dict[str, Any]) -> None:
    """
    Configures the logging system from a configuration dictionary.

    Sets up logging to the console and, when a log file is configured,
    to a rotating file.
    """
    log_config = config.get('logging', {})
    log_level = log_config.get('level', 'INFO').upper()
    log_format = log_config.get('format', '%(asctime)s - %(levelname)s - %(message)s')
    log_file_path: Optional[str] = log_config.get('log_file', 'logs/motion.log')

    logger = logging.getLogger()
    logger.setLevel(log_level)

    # Clear existing handlers to avoid duplication
    if logger.hasHandlers():
        logger.handlers.clear()

    formatter = logging.Formatter(log_format)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file_path:
        log_dir = os.path.dirname(log_file_path)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
        # Rotates when the log reaches 1MB, keeps 5 backup logs.
        file_handler = logging.handlers.RotatingFileHandler(
            log_file_path, maxBytes=1024*1024, backupCount=5
        )
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    logging.info("Logging system initialized.")
    logging.debug(f"Log level set to {log_level}.")
    logging.debug(f"Log file path: {log_file_path}")

def load_config(path: str) -> Dict[str, Any]:
    """Loads a JSON configuration file."""
    logging.info(f"Loading configuration from {path}...")
    try:
        with open(path, 'r') as f:
            config = json.load(f)
        logging.info("Configuration loaded successfully.")
        return config
    except FileNotFoundError:
        logging.error(f"Configuration file not found at {path}.")
        raise
    except json.JSONDecodeError:
        logging.error(f"Error decoding JSON from {path}.")
        raise

def config_error(msg: str) -> ValueError:
    """Logs a configuration error and returns the exception to raise."""
    logging.critical(f"Configuration error: {msg}")
    return ValueError(msg)

def require_finite(name: str, value: Any) -> float:
    try:
        value = float(value)
    except (TypeError, ValueError):
        raise config_error(f"{name} must be a number, got {value!r}.")
    if not math.isfinite(value):
        raise config_error(f"{name} must be finite, got {value}.")
    return value

def require_non_negative(name: str, value: Any) -> float:
    value = require_finite(name, value)
    if value < 0:
        raise config_error(f"{name} must be >= 0, got {value}.")
    return value

def require_positive(name: str, value: Any) -> float:
    value = require_finite(name, value)
    if value <= 0:
        raise config_error(f"{name} must be > 0, got {value}.")
    return value

def require_unit_interval(name: str, value: Any, closed: bool = True) -> float:
    """Validates 0 <= value <= 1, or 0 <= value < 1 when closed is False."""
    value = require_finite(name, value)
    upper_ok = value <= 1.0 if closed else value < 1.0
    if value < 0 or not upper_ok:
        bound = "[0, 1]" if closed else "[0, 1)"
        raise config_error(f"{name} must lie in {bound}, got {value}.")
    return value

def require_ordered(name: str, low: Any, high: Any) -> tuple:
    """Validates a (low, high) pair with low <= high."""
    low = require_finite(f"{name} minimum", low)
    high = require_finite(f"{name} maximum", high)
    if low > high:
        raise config_error(f"{name} minimum ({low}) is greater than its maximum ({high}).")
    return low, high
