"""Tests for timing, logging setup and asyncio helpers."""

import logging

import pytest

from coderag.errors import RetrievalError, StoreError
from coderag.models.config import RetrievalConfig
from coderag.utils import configure_logging, describe_error, log_elapsed, maybe_await


class TestLogElapsed:
    def test_records_into_caller_dict(self):
        timings: dict[str, float] = {}

        with log_elapsed("stage", timings):
            pass

        assert set(timings) == {"stage"}
        assert timings["stage"] >= 0.0

    def test_reraises_and_still_records(self):
        timings: dict[str, float] = {}

        with pytest.raises(ValueError):
            with log_elapsed("stage", timings):
                raise ValueError("boom")

        assert "stage" in timings

    def test_without_dict(self):
        with log_elapsed("stage"):
            pass


class TestConfigureLogging:
    def test_applies_level(self, monkeypatch):
        calls = {}
        monkeypatch.setattr(logging, "basicConfig", lambda **kwargs: calls.update(kwargs))

        configure_logging("debug")

        assert calls["level"] == logging.DEBUG


class TestAsyncHelpers:
    @pytest.mark.asyncio
    async def test_maybe_await_plain_value(self):
        assert await maybe_await(3) == 3

    @pytest.mark.asyncio
    async def test_maybe_await_coroutine(self):
        async def value():
            return "chunk"

        assert await maybe_await(value()) == "chunk"

    def test_describe_error(self):
        assert describe_error(KeyError("x")) == "KeyError: 'x'"
        assert describe_error(RuntimeError()) == "RuntimeError: no details"


class TestErrorsAndConfig:
    def test_error_carries_cause(self):
        cause = OSError("disk")
        error = StoreError("vector search failed", cause)

        assert isinstance(error, RetrievalError)
        assert error.cause is cause
        assert str(error) == "vector search failed"

    def test_config_rejects_zero_weights(self):
        with pytest.raises(ValueError):
            RetrievalConfig(vector_weight=0.0, bm25_weight=0.0)

    def test_config_from_settings(self):
        config = RetrievalConfig.from_settings()
        assert config.top_k >= 1
        assert config.fusion in ("weighted", "rrf")
