"""Moderation gate run over queries (and optionally note content) before embedding."""

from __future__ import annotations

import logging
from typing import Protocol

from notefinder.errors import FlaggedContentError

LOGGER = logging.getLogger(__name__)


class ModerationProvider(Protocol):
    def moderate(self, text: str) -> bool: ...


class ModerationGate:
    def __init__(self, provider: ModerationProvider) -> None:
        self.provider = provider

    def check(self, text: str) -> None:
        """Raise FlaggedContentError when the provider flags ``text``."""
        if self.provider.moderate(text):
            LOGGER.warning("Moderation flagged text starting with %r", text[:40])
            raise FlaggedContentError(text)
