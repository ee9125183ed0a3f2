"""Text helpers for embedding input and result display."""

from __future__ import annotations

import re

_MARKDOWN_RULES = (
    (re.compile(r"!\[([^[\]]+)\]\([^()]+\)"), ""),
    (re.compile(r"[*_]{1,2}([^*_]+)[*_]{1,2}"), r"\1"),
    (re.compile(r"#{1,6}\s*(.*)"), r"\1"),
    (re.compile(r"\[([^[\]]+)\]\([^()]+\)"), r"\1"),
    (re.compile(r"`{3}([^`]+)`{3}"), ""),
    (re.compile(r"`([^`]+)`"), r"\1"),
    (re.compile(r"^[\s]*[\-*+]\s+(.*)", re.MULTILINE), r"\1"),
    (re.compile(r"^>\s+(.*)", re.MULTILINE), r"\1"),
    (re.compile(r"^-{3,}", re.MULTILINE), ""),
    (re.compile(r"~~([^~]+)~~"), r"\1"),
    (re.compile(r"\[\[([^\]]+)\]\]"), r"\1"),
)


def fold_newlines(text: str) -> str:
    """Replace newlines with spaces, which embedding models handle better."""
    return text.replace("\r\n", " ").replace("\n", " ")


def remove_markdown(text: str) -> str:
    """Strip common markdown syntax, leaving readable plain text."""
    for pattern, replacement in _MARKDOWN_RULES:
        text = pattern.sub(replacement, text)
    return text


def truncate_string(text: str, max_length: int) -> str:
    if len(text) <= max_length:
        return text
    return text[:max_length] + "..."
