"""
Bridges from other logging frameworks into the nrlogs pipeline.
"""

from .stdlib import ApiLogHandler, StdlibSink

__all__ = ["ApiLogHandler", "StdlibSink"]
