"""
Severity table.

Seven ordered levels, rank 0 being the most severe. A logger configured at a
given level accepts that level and everything more severe.
"""

import logging
from enum import Enum
from typing import Dict, List, Tuple, Union

from .exceptions import InvalidLevel


class Severity(str, Enum):
    """Recognized log levels, declared from most to least severe."""

    ERROR = "error"
    WARN = "warn"
    INFO = "info"
    HTTP = "http"
    VERBOSE = "verbose"
    DEBUG = "debug"
    SILLY = "silly"

    @property
    def rank(self) -> int:
        return _RANKS[self]


LevelLike = Union[Severity, str]

_RANKS: Dict[Severity, int] = {level: index for index, level in enumerate(Severity)}

LEVEL_NAMES: List[str] = [level.value for level in Severity]

DEFAULT_LEVEL = Severity.INFO

# stdlib logging numbers, used by the logging bridge
_STDLIB_LEVELS: Dict[Severity, int] = {
    Severity.ERROR: logging.ERROR,
    Severity.WARN: logging.WARNING,
    Severity.INFO: logging.INFO,
    Severity.HTTP: 17,
    Severity.VERBOSE: 15,
    Severity.DEBUG: logging.DEBUG,
    Severity.SILLY: 5,
}

_STDLIB_THRESHOLDS: List[Tuple[int, Severity]] = sorted(
    ((number, level) for level, number in _STDLIB_LEVELS.items()),
    reverse=True,
)


def parse_level(value: LevelLike) -> Severity:
    """Return the Severity for a level or level name, raising InvalidLevel."""
    if isinstance(value, Severity):
        return value
    if isinstance(value, str):
        try:
            return Severity(value)
        except ValueError:
            pass
    raise InvalidLevel(value)


def rank(level: LevelLike) -> int:
    """Numeric rank of a level (0 = error, 6 = silly)."""
    return parse_level(level).rank


def is_enabled(configured: LevelLike, candidate: LevelLike) -> bool:
    """True when a logger set to ``configured`` should emit ``candidate``."""
    return rank(candidate) <= rank(configured)


def to_stdlib_level(level: LevelLike) -> int:
    return _STDLIB_LEVELS[parse_level(level)]


def from_stdlib_level(levelno: int) -> Severity:
    """Bucket a stdlib level number into the closest severity at or below it."""
    for number, level in _STDLIB_THRESHOLDS:
        if levelno >= number:
            return level
    return Severity.SILLY
