"""String truncation for messages and error attributes."""

from typing import Any

OUTPUT_LENGTH = 1024
MAX_LENGTH = OUTPUT_LENGTH - 3
ELLIPSIS = "..."


def truncate(value: Any) -> Any:
    """
    Bound a string to OUTPUT_LENGTH characters.

    Longer strings keep their first MAX_LENGTH characters followed by an
    ellipsis. Anything that is not a string is returned untouched.
    """
    if isinstance(value, str) and len(value) > OUTPUT_LENGTH:
        return value[:MAX_LENGTH] + ELLIPSIS
    return value
