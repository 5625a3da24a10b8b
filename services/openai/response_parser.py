"""Helpers to parse Responses API outputs."""

from typing import Any, Dict, Optional


def _field(item: Any, name: str, default: Any = None) -> Any:
    """Read ``name`` from an SDK model or a plain dict."""
    if isinstance(item, dict):
        return item.get(name, default)
    return getattr(item, name, default)


def extract_text(response: Any) -> str:
    """Concatenate the ``output_text`` parts of every message in the response."""
    chunks = []
    for item in _field(response, "output", None) or []:
        if _field(item, "type") != "message":
            continue
        for content in _field(item, "content", None) or []:
            if _field(content, "type") == "output_text":
                chunks.append(_field(content, "text", "") or "")
    if chunks:
        return "".join(chunks)
    return _field(response, "output_text", "") or ""


def extract_usage(response: Any) -> Dict[str, Optional[int]]:
    """Return token usage information from the response, if present."""
    usage = _field(response, "usage", None)
    return {
        "input_tokens": _field(usage, "input_tokens", None) if usage else None,
        "output_tokens": _field(usage, "output_tokens", None) if usage else None,
    }
