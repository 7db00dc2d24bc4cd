"""
reasoning/parsing.py — Staged Decision Decoding

Turns a free-text model reply into a Decision, in order:

    1. strict_decode          → the whole reply (code fences stripped) is one JSON object
    2. find_balanced_object   → the first balanced {...} substring that decodes
    3. fallback               → the raw reply becomes the message, nextAction=complete

Each stage is a plain function so it can be exercised on its own.
"""

from __future__ import annotations

import json
from typing import Any, Optional

from taskweave.observability.logger import get_logger
from taskweave.reasoning.types import (
    CapabilityCall,
    Decision,
    NextAction,
    ParsedReply,
    ParseStage,
)

log = get_logger(__name__)

# Keys accepted for the call list, in priority order
_CALL_KEYS = ("capabilityCalls", "capability_calls", "toolCalls", "tool_calls")
_NEXT_ACTION_KEYS = ("nextAction", "next_action")


def strip_code_fences(text: str) -> str:
    """Remove a surrounding ```json ... ``` fence if present."""
    content = text.strip()
    if content.startswith("```"):
        lines = content.splitlines()
        end = len(lines) - 1 if len(lines) > 1 and lines[-1].strip() == "```" else len(lines)
        content = "\n".join(lines[1:end]).strip()
    return content


def strict_decode(text: str) -> Optional[dict[str, Any]]:
    """Decode the entire reply. Only a JSON object counts as success."""
    try:
        data = json.loads(strip_code_fences(text))
    except (json.JSONDecodeError, ValueError):
        return None
    return data if isinstance(data, dict) else None


def find_balanced_object(text: str) -> Optional[dict[str, Any]]:
    """
    Return the first brace-balanced substring that decodes to a JSON object.

    Braces inside string literals are ignored. A balanced candidate that
    fails to decode is skipped and the scan resumes at the next '{'.
    """
    start = text.find("{")
    while start != -1:
        end = _balanced_end(text, start)
        if end is None:
            start = text.find("{", start + 1)
            continue
        try:
            data = json.loads(text[start:end + 1])
        except (json.JSONDecodeError, ValueError):
            data = None
        if isinstance(data, dict):
            return data
        start = text.find("{", start + 1)
    return None


def _balanced_end(text: str, start: int) -> Optional[int]:
    depth = 0
    in_string = False
    escaped = False
    for i in range(start, len(text)):
        ch = text[i]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return i
    return None


def decode_reply(text: str) -> ParsedReply:
    """Run the decode stages and report which one succeeded."""
    raw = text or ""
    payload = strict_decode(raw)
    if payload is not None:
        return ParsedReply(stage=ParseStage.STRICT, raw=raw, payload=payload)
    payload = find_balanced_object(raw)
    if payload is not None:
        return ParsedReply(stage=ParseStage.SUBSTRING, raw=raw, payload=payload)
    return ParsedReply(stage=ParseStage.FALLBACK, raw=raw)


def coerce_decision(reply: ParsedReply) -> Decision:
    """Shape a decoded (or undecoded) reply into a well-formed Decision."""
    if reply.payload is None:
        return Decision(
            message=reply.raw,
            next_action=NextAction.COMPLETE,
            metadata={"raw_response": reply.raw, "parse_stage": reply.stage.value},
        )

    payload = reply.payload
    message = payload.get("message")
    if not isinstance(message, str) or not message:
        message = reply.raw if message in (None, "") else str(message)

    raw_calls = next((payload[k] for k in _CALL_KEYS if k in payload), None)
    calls = _coerce_calls(raw_calls)

    raw_next = next((payload[k] for k in _NEXT_ACTION_KEYS if k in payload), None)

    metadata: dict[str, Any] = {
        "raw_response": reply.raw,
        "parse_stage": reply.stage.value,
    }
    reasoning = payload.get("reasoning")
    if reasoning is not None:
        metadata["reasoning"] = reasoning if isinstance(reasoning, str) else str(reasoning)

    return Decision(
        message=message,
        capability_calls=calls,
        next_action=NextAction.parse(raw_next),
        metadata=metadata,
    )


def _coerce_calls(raw: Any) -> list[CapabilityCall]:
    if not isinstance(raw, list):
        return []
    calls: list[CapabilityCall] = []
    for entry in raw:
        if not isinstance(entry, dict):
            log.debug("parsing.call_dropped", reason="not an object")
            continue
        name = entry.get("name") or entry.get("toolName") or entry.get("capability")
        if not isinstance(name, str) or not name.strip():
            log.debug("parsing.call_dropped", reason="missing name")
            continue
        params = entry.get("parameters")
        if params is None:
            params = {}
        if not isinstance(params, dict):
            log.debug("parsing.call_dropped", capability=name, reason="parameters not an object")
            continue
        reasoning = entry.get("reasoning")
        calls.append(CapabilityCall(
            name=name.strip(),
            parameters=params,
            reasoning=reasoning if isinstance(reasoning, str) else None,
        ))
    return calls


def parse_reply(text: str) -> Decision:
    """decode_reply() followed by coerce_decision(). Never raises."""
    reply = decode_reply(text)
    decision = coerce_decision(reply)
    log.debug(
        "parsing.reply_parsed",
        stage=reply.stage.value,
        calls=len(decision.capability_calls),
        next_action=decision.next_action.value,
    )
    return decision
