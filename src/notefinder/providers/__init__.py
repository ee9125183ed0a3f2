"""Factories wiring configured providers into the engine."""

from __future__ import annotations

import logging

from openai import OpenAI

from notefinder.config import AppConfig, require_openai_key
from notefinder.embedding.encoder import EmbeddingConfig, EmbeddingModel, EmbeddingProvider
from notefinder.moderation import ModerationGate
from notefinder.providers.openai_api import (
    OpenAIChatProvider,
    OpenAIEmbeddingProvider,
    OpenAIModerationProvider,
)

LOGGER = logging.getLogger(__name__)

__all__ = [
    "OpenAIChatProvider",
    "OpenAIEmbeddingProvider",
    "OpenAIModerationProvider",
    "build_chat_provider",
    "build_embedder",
    "build_moderation_gate",
    "build_openai_client",
]


def build_openai_client(config: AppConfig) -> OpenAI:
    return OpenAI(api_key=require_openai_key(config))


def build_embedder(config: AppConfig) -> EmbeddingProvider:
    if config.embedding_provider == "openai":
        LOGGER.info("Using OpenAI embeddings (%s)", config.openai_embedding_model)
        return OpenAIEmbeddingProvider(
            build_openai_client(config), model=config.openai_embedding_model
        )
    return EmbeddingModel(EmbeddingConfig(model_name=config.model_name))


def build_moderation_gate(config: AppConfig) -> ModerationGate:
    return ModerationGate(OpenAIModerationProvider(build_openai_client(config)))


def build_chat_provider(config: AppConfig) -> OpenAIChatProvider:
    return OpenAIChatProvider(build_openai_client(config), model=config.chat_model)
