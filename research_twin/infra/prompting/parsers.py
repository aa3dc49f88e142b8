"""Normalization of raw model completions into a response payload."""

from __future__ import annotations

import json
import re
from typing import Any

_THINK_BLOCK = re.compile(r"<think>.*?</think>", re.IGNORECASE | re.DOTALL)
_STRAY_THINK_CLOSE = re.compile(r"^\s*</think>\s*", re.IGNORECASE | re.MULTILINE)
_CODE_FENCE = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", re.IGNORECASE | re.DOTALL)

FALLBACK_RESPONSE = "I could not generate a response."
FOLLOWUP_KEYS = (
    "suggested_followups",
    "followups",
    "suggested_questions",
    "suggested_follow_up_questions",
    "next_questions",
)
MAX_FOLLOWUPS = 5
MAX_DEPTH = 4


def strip_think_blocks(text: str) -> str:
    return _STRAY_THINK_CLOSE.sub("", _THINK_BLOCK.sub("", text or "")).strip()


def strip_json_code_fence(text: str) -> str:
    trimmed = (text or "").strip()
    m = _CODE_FENCE.match(trimmed)
    return m.group(1).strip() if m else trimmed


def extract_first_structured_json(text: str) -> dict[str, Any] | None:
    """First balanced ``{...}`` object in text that carries a string ``response_text``."""
    if not text or "{" not in text or "response_text" not in text:
        return None
    decoder = json.JSONDecoder()
    for start, ch in enumerate(text):
        if ch != "{":
            continue
        try:
            obj, _end = decoder.raw_decode(text, start)
        except ValueError:
            continue
        if isinstance(obj, dict) and isinstance(obj.get("response_text"), str):
            return obj
    return None


def coerce_payload(raw: Any) -> dict[str, Any]:
    current = raw
    for _ in range(MAX_DEPTH):
        if isinstance(current, str):
            cleaned = strip_json_code_fence(strip_think_blocks(current))
            if not cleaned:
                return {}
            embedded = extract_first_structured_json(cleaned)
            if embedded is not None:
                current = embedded
                continue
            try:
                parsed = json.loads(cleaned)
            except ValueError:
                return {"response_text": cleaned}
            if isinstance(parsed, dict | str):
                current = parsed
                continue
            return {"response_text": cleaned}

        if not isinstance(current, dict):
            return {}
        if isinstance(current.get("response_text"), str):
            return current
        if current.get("result") is not None:
            current = current["result"]
            continue
        if current.get("response") is not None:
            current = current["response"]
            continue
        return current
    return {}


def extract_followups(payload: dict[str, Any]) -> list[str]:
    for key in FOLLOWUP_KEYS:
        value = payload.get(key)
        if isinstance(value, list):
            return [s for s in (str(v).strip() for v in value) if s][:MAX_FOLLOWUPS]
    return []


def parse_model_response(completion: str) -> tuple[str, list[str]]:
    """Return (response_text, suggested_followups) from a raw completion."""
    payload = coerce_payload(completion)
    text = ""
    for key in ("response_text", "text", "message", "answer"):
        value = payload.get(key)
        if isinstance(value, str) and value.strip():
            text = value
            break
    if not text:
        text = strip_think_blocks(completion or "") or FALLBACK_RESPONSE
    return text, extract_followups(payload)
