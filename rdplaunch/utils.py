"""Utility functions for rdp-vm-launcher."""

from __future__ import annotations

import os
import subprocess
import time
from typing import Callable, List, Optional, TypeVar

from rdplaunch.constants import _LOG_VERBOSE
from rdplaunch.exceptions import ConfigError

T = TypeVar("T")


def log(level: str, message: str) -> None:
    """Lightweight structured logging with coloured level tags."""
    if level == "DEBUG" and not _LOG_VERBOSE:
        return
    colours = {
        "INFO": "\033[0;34m",
        "WARN": "\033[1;33m",
        "ERROR": "\033[0;31m",
        "SUCCESS": "\033[0;32m",
        "DEBUG": "\033[0;90m",
    }
    colour = colours.get(level, "")
    reset = "\033[0m" if colour else ""
    print(f"{colour}[{level}]{reset} {message}", flush=True)


def get_env(name: str, default: Optional[str] = None) -> Optional[str]:
    return os.environ.get(name, default)


def parse_int_env(name: str, default: str, min_val: int = 1, max_val: Optional[int] = None) -> int:
    raw = get_env(name, default)
    assert raw is not None
    try:
        value = int(raw)
    except ValueError:
        raise ConfigError(f"{name} must be an integer (got '{raw}')")
    if value < min_val:
        raise ConfigError(f"{name} must be >= {min_val} (got {value})")
    if max_val is not None and value > max_val:
        raise ConfigError(f"{name} must be <= {max_val} (got {value})")
    return value


def poll_until(
    predicate: Callable[[], Optional[T]],
    interval: float,
    limit: float,
    on_first_wait: Optional[Callable[[], None]] = None,
) -> Optional[T]:
    """Re-evaluate ``predicate`` every ``interval`` seconds until it returns a truthy value.

    The predicate is checked at t = 0, interval, ... and once more when the
    budget runs out, so a budget of ``limit`` seconds allows
    ``limit / interval + 1`` checks. ``on_first_wait`` runs once, after the
    first interval has elapsed without a result. Returns the first truthy
    result, or None when the budget is exhausted.
    """
    elapsed = 0.0
    while True:
        result = predicate()
        if result:
            return result
        if elapsed >= limit:
            return None
        first = elapsed == 0
        # the last sleep is shortened so the final check lands on the deadline
        step = min(interval, limit - elapsed)
        time.sleep(step)
        elapsed += step
        if first and on_first_wait is not None:
            on_first_wait()


def run(cmd: List[str], check: bool = True, **kwargs) -> subprocess.CompletedProcess:
    """Run command with logging."""
    log("DEBUG", f"Running: {' '.join(cmd)}")
    result = subprocess.run(cmd, check=check, text=True, **kwargs)
    return result
