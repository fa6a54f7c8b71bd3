from __future__ import annotations

import pytest

from ragchat.config import Settings
from ragchat.errors import GenerationServiceError
from ragchat.retry import RetryPolicy
from ragchat.services.generation import GenerationClient, TemplateGenerator, build_generation_backend

from conftest import StubGenerator


class BrokenIterator:
    """Upstream stream that fails on its first read and records being closed."""

    def __init__(self) -> None:
        self.closed = False

    def __iter__(self) -> "BrokenIterator":
        return self

    def __next__(self) -> str:
        raise ConnectionError("reset by peer")

    def close(self) -> None:
        self.closed = True


class BrokenBackend:
    def __init__(self) -> None:
        self.opened: list[BrokenIterator] = []

    def stream(self, prompt: str) -> BrokenIterator:
        iterator = BrokenIterator()
        self.opened.append(iterator)
        return iterator


def _client(backend, sleeps: list[float]) -> GenerationClient:
    return GenerationClient(backend, RetryPolicy(attempts=3, delay_seconds=2.0), sleep=sleeps.append)


def test_two_failures_then_success_returns_live_stream() -> None:
    sleeps: list[float] = []
    backend = StubGenerator(["x", "y"], failures=2)

    stream = _client(backend, sleeps).open_stream("prompt")

    assert list(stream) == ["x", "y"]
    assert sleeps == [2.0, 2.0]
    assert len(backend.prompts) == 3


def test_exhausted_attempts_raise_without_stream() -> None:
    sleeps: list[float] = []
    backend = StubGenerator(failures=3)

    with pytest.raises(GenerationServiceError) as excinfo:
        _client(backend, sleeps).open_stream("prompt")

    assert isinstance(excinfo.value.__cause__, ConnectionError)
    assert sleeps == [2.0, 2.0]
    assert len(backend.prompts) == 3


def test_failed_attempts_close_their_upstream_stream() -> None:
    backend = BrokenBackend()

    with pytest.raises(GenerationServiceError):
        _client(backend, []).open_stream("prompt")

    assert len(backend.opened) == 3
    assert all(iterator.closed for iterator in backend.opened)


def test_terminal_error_is_not_retried() -> None:
    sleeps: list[float] = []
    backend = StubGenerator(failures=3, error=ValueError("prompt rejected"))

    with pytest.raises(GenerationServiceError):
        _client(backend, sleeps).open_stream("prompt")

    assert len(backend.prompts) == 1
    assert sleeps == []


def test_empty_upstream_stream_yields_nothing() -> None:
    stream = _client(StubGenerator([]), []).open_stream("prompt")

    assert list(stream) == []


def test_template_generator_is_deterministic() -> None:
    first = "".join(TemplateGenerator().stream("abc"))
    second = "".join(TemplateGenerator().stream("abc"))

    assert first == second
    assert "3 characters" in first


def test_backend_falls_back_to_template_without_api_key() -> None:
    settings = Settings(environment="test", use_model_generator=True, google_api_key=None)

    assert isinstance(build_generation_backend(settings), TemplateGenerator)
    assert isinstance(build_generation_backend(Settings(environment="test")), TemplateGenerator)
