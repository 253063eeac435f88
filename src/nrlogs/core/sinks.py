"""
Sink contract.

A sink is anything that can be asked whether a level is enabled and told to
emit a record at that level. The native ApiLogger and the stdlib logging
bridge both satisfy it, so callers pick a sink once and stop branching.
"""

from typing import Any, Mapping, Optional, Protocol, runtime_checkable

from .levels import LevelLike


@runtime_checkable
class LogSink(Protocol):
    """Enablement and emit contract shared by every sink."""

    def set_level(self, level: LevelLike) -> None:
        ...

    def is_level_enabled(self, level: LevelLike) -> bool:
        ...

    def emit(
        self,
        level: LevelLike,
        message: Any,
        attributes: Optional[Mapping[str, Any]] = None,
        error: Optional[BaseException] = None,
    ) -> None:
        ...
