"""Decoder for the agent CLI's ``--output-format stream-json`` protocol.

Every stdout line is one complete JSON object:

    {"type": "system", "subtype": "init", "session_id": "...", ...}
    {"type": "user", "message": {"content": [...]}, "session_id": "..."}
    {"type": "assistant", "message": {"content": [...]}, "session_id": "..."}
    {"type": "result", "subtype": "success", "is_error": false,
     "result": "...", "session_id": "...", "usage": {...}}

Lines are decoded independently; nothing is buffered across lines.
"""
from __future__ import annotations

import json
import logging
from typing import Any

from .errors import StreamDecodeError
from .models import (
    AssistantEvent,
    MessageContentPart,
    ResultEvent,
    StreamEvent,
    SystemEvent,
    TextPart,
    ToolResultPart,
    ToolUsePart,
    UserEvent,
)

logger = logging.getLogger(__name__)


def decode_line(line: str) -> StreamEvent:
    """Decode one stdout line into a typed stream event.

    Raises StreamDecodeError when the line is not a JSON object or does
    not match any known event shape. Callers log and skip such lines.
    """
    stripped = line.strip()
    if not stripped:
        raise StreamDecodeError(line, "empty line")

    try:
        data = json.loads(stripped)
    except (json.JSONDecodeError, ValueError) as exc:
        raise StreamDecodeError(line, f"invalid JSON: {exc}") from exc

    if not isinstance(data, dict):
        raise StreamDecodeError(line, "not a JSON object")

    etype = data.get("type")
    session_id = _session_id(data, line)

    if etype == "system":
        return SystemEvent(
            session_id=session_id,
            subtype=str(data.get("subtype") or ""),
            raw=data,
        )
    if etype == "user":
        return UserEvent(
            session_id=session_id,
            content=_parse_message_content(data, line),
        )
    if etype == "assistant":
        content = _parse_message_content(data, line)
        message = data["message"]
        return AssistantEvent(
            session_id=session_id,
            content=content,
            message_id=str(message.get("id") or ""),
            model=str(message.get("model") or ""),
        )
    if etype == "result":
        return _parse_result(data, session_id, line)

    raise StreamDecodeError(line, f"unknown event type {etype!r}")


def _session_id(data: dict[str, Any], line: str) -> str:
    value = data.get("session_id")
    if value is None:
        return ""
    if not isinstance(value, str):
        raise StreamDecodeError(line, "session_id is not a string")
    return value


def _parse_message_content(
    data: dict[str, Any], line: str,
) -> tuple[MessageContentPart, ...]:
    message = data.get("message")
    if not isinstance(message, dict):
        raise StreamDecodeError(line, "missing message object")
    content = message.get("content")
    # User echoes may carry a bare string instead of a part list.
    if isinstance(content, str):
        return (TextPart(text=content),)
    if not isinstance(content, list):
        raise StreamDecodeError(line, "message.content is not a list")

    parts: list[MessageContentPart] = []
    for item in content:
        if not isinstance(item, dict):
            raise StreamDecodeError(line, "content item is not an object")
        part = _parse_content_part(item)
        if part is not None:
            parts.append(part)
    return tuple(parts)


def _parse_content_part(item: dict[str, Any]) -> MessageContentPart | None:
    ptype = item.get("type")
    if ptype == "text":
        return TextPart(text=str(item.get("text") or ""))
    if ptype == "tool_use":
        tool_input = item.get("input")
        return ToolUsePart(
            id=str(item.get("id") or ""),
            name=str(item.get("name") or ""),
            input=tool_input if isinstance(tool_input, dict) else {},
        )
    if ptype == "tool_result":
        return ToolResultPart(
            tool_use_id=str(item.get("tool_use_id") or ""),
            content=_flatten_tool_result(item.get("content")),
        )
    # thinking blocks, images, etc.
    logger.debug("Skipping unsupported content part type %r", ptype)
    return None


def _flatten_tool_result(content: Any) -> str:
    """Tool results arrive either as a string or a list of text blocks."""
    if content is None:
        return ""
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        texts = [
            str(block.get("text", ""))
            for block in content
            if isinstance(block, dict) and block.get("type") == "text"
        ]
        return "\n".join(texts)
    return str(content)


def _parse_result(
    data: dict[str, Any], session_id: str, line: str,
) -> ResultEvent:
    result = data.get("result")
    if result is not None and not isinstance(result, str):
        raise StreamDecodeError(line, "result is not a string")
    usage = data.get("usage")
    return ResultEvent(
        session_id=session_id,
        subtype=str(data.get("subtype") or "success"),
        is_error=bool(data.get("is_error", False)),
        result=result or "",
        usage=usage if isinstance(usage, dict) else {},
        total_cost_usd=data.get("total_cost_usd"),
        duration_ms=data.get("duration_ms"),
        num_turns=data.get("num_turns"),
    )
