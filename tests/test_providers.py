"""Tests for OpenAI-backed providers and provider factories."""

from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import numpy as np
import openai
import pytest

from notefinder.config import AppConfig
from notefinder.errors import ConfigurationError, EmbeddingProviderError
from notefinder.moderation import ModerationGate
from notefinder.providers import (
    OpenAIChatProvider,
    OpenAIEmbeddingProvider,
    OpenAIModerationProvider,
    build_chat_provider,
    build_embedder,
    build_moderation_gate,
)


class TestOpenAIEmbeddingProvider:
    def test_embed_returns_vector_and_usage(self) -> None:
        client = MagicMock()
        client.embeddings.create.return_value = SimpleNamespace(
            data=[SimpleNamespace(embedding=[0.1, 0.2, 0.3])],
            usage=SimpleNamespace(total_tokens=7),
        )
        provider = OpenAIEmbeddingProvider(client)

        embedding = provider.embed("hello")

        client.embeddings.create.assert_called_once_with(
            model="text-embedding-ada-002", input="hello"
        )
        assert embedding.vector.dtype == np.float32
        np.testing.assert_allclose(embedding.vector, [0.1, 0.2, 0.3], rtol=1e-6)
        assert embedding.token_count == 7

    def test_known_model_dimension(self) -> None:
        assert OpenAIEmbeddingProvider(MagicMock()).dimension == 1536
        assert OpenAIEmbeddingProvider(MagicMock(), model="unknown").dimension is None

    def test_api_error_is_wrapped(self) -> None:
        client = MagicMock()
        client.embeddings.create.side_effect = openai.OpenAIError("rate limited")

        with pytest.raises(EmbeddingProviderError, match="rate limited"):
            OpenAIEmbeddingProvider(client).embed("hello")

    def test_empty_response_is_an_error(self) -> None:
        client = MagicMock()
        client.embeddings.create.return_value = SimpleNamespace(
            data=[], usage=SimpleNamespace(total_tokens=0)
        )

        with pytest.raises(EmbeddingProviderError):
            OpenAIEmbeddingProvider(client).embed("hello")


class TestOpenAIModerationProvider:
    @pytest.mark.parametrize(("flags", "expected"), [([False], False), ([False, True], True)])
    def test_moderate(self, flags, expected) -> None:
        client = MagicMock()
        client.moderations.create.return_value = SimpleNamespace(
            results=[SimpleNamespace(flagged=flag) for flag in flags]
        )

        assert OpenAIModerationProvider(client).moderate("text") is expected
        client.moderations.create.assert_called_once_with(input="text")

    def test_api_error_is_wrapped(self) -> None:
        client = MagicMock()
        client.moderations.create.side_effect = openai.OpenAIError("down")

        with pytest.raises(EmbeddingProviderError):
            OpenAIModerationProvider(client).moderate("text")


class TestOpenAIChatProvider:
    def test_complete_returns_choice_texts(self) -> None:
        client = MagicMock()
        client.chat.completions.create.return_value = SimpleNamespace(
            choices=[
                SimpleNamespace(message=SimpleNamespace(content="first")),
                SimpleNamespace(message=SimpleNamespace(content=None)),
            ]
        )
        messages = [{"role": "user", "content": "hi"}]

        choices = OpenAIChatProvider(client, model="gpt-4o-mini").complete(messages)

        assert choices == ["first", ""]
        client.chat.completions.create.assert_called_once_with(
            model="gpt-4o-mini", messages=messages
        )

    def test_api_error_is_wrapped(self) -> None:
        client = MagicMock()
        client.chat.completions.create.side_effect = openai.OpenAIError("bad request")

        with pytest.raises(EmbeddingProviderError):
            OpenAIChatProvider(client).complete([])


class TestFactories:
    def test_local_embedder(self) -> None:
        with patch("notefinder.providers.EmbeddingModel") as model_cls:
            embedder = build_embedder(AppConfig(model_name="custom-model"))

        assert embedder is model_cls.return_value
        assert model_cls.call_args[0][0].model_name == "custom-model"

    def test_openai_embedder(self) -> None:
        config = AppConfig(embedding_provider="openai", openai_api_key="sk-test")
        with patch("notefinder.providers.OpenAI") as client_cls:
            embedder = build_embedder(config)

        client_cls.assert_called_once_with(api_key="sk-test")
        assert isinstance(embedder, OpenAIEmbeddingProvider)
        assert embedder.model == "text-embedding-ada-002"

    def test_openai_embedder_without_key(self, monkeypatch) -> None:
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)

        with pytest.raises(ConfigurationError):
            build_embedder(AppConfig(embedding_provider="openai"))

    def test_moderation_gate(self) -> None:
        with patch("notefinder.providers.OpenAI"):
            gate = build_moderation_gate(AppConfig(openai_api_key="sk-test"))

        assert isinstance(gate, ModerationGate)
        assert isinstance(gate.provider, OpenAIModerationProvider)

    def test_chat_provider_uses_configured_model(self) -> None:
        config = AppConfig(openai_api_key="sk-test", chat_model="gpt-4o")
        with patch("notefinder.providers.OpenAI"):
            chat = build_chat_provider(config)

        assert chat.model == "gpt-4o"

    def test_chat_provider_without_key(self, monkeypatch) -> None:
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)

        with pytest.raises(ConfigurationError):
            build_chat_provider(AppConfig())
