"""
Demo endpoints that trigger log calls.

Query parameters:
- message: the message, may contain %s placeholders
- args: repeated values substituted into the message
- attrs[name]=value: per-record attributes
"""

import re
from typing import Any, Dict, List, Optional

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, Request

from ..core.levels import Severity
from ..core.sinks import LogSink

logger = structlog.get_logger(__name__)

router = APIRouter()

_ATTR_PARAM = re.compile(r"^attrs\[([^\]]+)\]$")


def get_sink(request: Request) -> LogSink:
    """Resolve the active sink once for this request."""
    state = request.app.state
    return state.sinks[state.sink_kind]


def parse_attrs(request: Request) -> Dict[str, Any]:
    """Collect ``attrs[name]=value`` query parameters."""
    attributes: Dict[str, Any] = {}
    for key, value in request.query_params.multi_items():
        match = _ATTR_PARAM.match(key)
        if match:
            attributes[match.group(1)] = value
    return attributes


def format_message(message: str, args: List[str]) -> str:
    """printf-style substitution; leftover args are appended with spaces."""
    if not args:
        return message
    try:
        return message % tuple(args)
    except (TypeError, ValueError):
        return " ".join([message, *args])


@router.get("/level", summary="Set the active sink's threshold")
async def set_level(level: str, sink: LogSink = Depends(get_sink)) -> Dict[str, str]:
    sink.set_level(level)
    logger.info("Threshold changed", level=level)
    return {"status": "success"}


@router.get("/type", summary="Choose the sink used by later requests")
async def set_type(request: Request, type: str = Query("api")) -> Dict[str, str]:
    kind = type if type in request.app.state.sinks else "api"
    request.app.state.sink_kind = kind
    return {"status": "success", "type": kind}


@router.get("/error", status_code=202, summary="Log an error with an attached exception")
async def log_error(
    request: Request,
    message: str = "",
    args: Optional[List[str]] = Query(None),
    sink: LogSink = Depends(get_sink),
) -> Dict[str, str]:
    text = format_message(message, args or [])
    try:
        raise RuntimeError(text)
    except RuntimeError as e:
        sink.emit(Severity.ERROR, text, parse_attrs(request), error=e)
    return {"status": "accepted"}


@router.post("/flush", summary="Harvest the active sink now")
async def flush(request: Request) -> Dict[str, Any]:
    state = request.app.state
    sink = state.sinks[state.sink_kind]
    api_logger = getattr(sink, "api_logger", sink)

    result = await api_logger.flush()
    return {
        "success": result.success,
        "records_sent": result.records_sent,
        "request_id": result.request_id,
        "error": result.error_message,
    }


@router.get("/{level}", status_code=202, summary="Log a message at the given level")
async def log_message(
    level: Severity,
    request: Request,
    message: str = "",
    args: Optional[List[str]] = Query(None),
    sink: LogSink = Depends(get_sink),
) -> Dict[str, str]:
    if level is Severity.ERROR:
        raise HTTPException(status_code=404, detail="Use /error to log errors")
    sink.emit(level, format_message(message, args or []), parse_attrs(request))
    return {"status": "accepted"}
