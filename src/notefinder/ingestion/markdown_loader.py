"""Front matter parsing and paragraph splitting for markdown notes."""

from __future__ import annotations

import logging
import re
from typing import Any, Dict, List, Tuple

import yaml

LOGGER = logging.getLogger(__name__)

FRONTMATTER_PATTERN = re.compile(r"^---\r?\n([\s\S]*?)\r?\n---\r?\n")
PARAGRAPH_BREAK = re.compile(r"\r?\n\s*\r?\n")


def parse_markdown(markdown: str) -> Tuple[Dict[str, Any], str]:
    """Split a leading YAML front matter block from the note body.

    Parsing is best effort: when the block is not valid YAML (or is not a
    mapping) the error is logged, the metadata is empty and the body is
    returned untouched.
    """
    match = FRONTMATTER_PATTERN.match(markdown)
    if not match:
        return {}, markdown

    try:
        parsed = yaml.safe_load(match.group(1))
    except yaml.YAMLError as exc:
        LOGGER.error("Error parsing frontmatter: %s", exc)
        return {}, markdown

    if parsed is None:
        parsed = {}
    if not isinstance(parsed, dict):
        LOGGER.error("Error parsing frontmatter: expected a mapping, got %s", type(parsed).__name__)
        return {}, markdown

    return _stringify_keys(parsed), markdown[match.end():]


def _stringify_keys(value: Any) -> Any:
    """Turn YAML mapping keys such as dates into strings so the metadata is JSON-safe."""
    if isinstance(value, dict):
        return {str(key): _stringify_keys(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_stringify_keys(item) for item in value]
    return value


def split_into_paragraphs(text: str) -> List[str]:
    """Split text on blank lines into trimmed, non-empty paragraphs."""
    paragraphs = (paragraph.strip() for paragraph in PARAGRAPH_BREAK.split(text))
    return [paragraph for paragraph in paragraphs if paragraph]


def split_document(markdown: str) -> Tuple[Dict[str, Any], List[str]]:
    frontmatter, content = parse_markdown(markdown)
    return frontmatter, split_into_paragraphs(content)
