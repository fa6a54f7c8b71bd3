from __future__ import annotations

from typing import Iterator

import pytest

from ragchat.errors import StreamRelayError
from ragchat.services.generation import GenerationStream
from ragchat.services.relay import relay_stream


def test_relay_forwards_chunks_in_order() -> None:
    assert list(relay_stream(iter(["a", "b", "c"]))) == [b"a", b"b", b"c"]


def test_relay_encodes_utf8_and_skips_empty_chunks() -> None:
    assert list(relay_stream(["caf", "", "é"])) == [b"caf", "é".encode("utf-8")]


def test_relay_keeps_sent_bytes_when_source_fails() -> None:
    def source() -> Iterator[str]:
        yield "partial"
        raise RuntimeError("upstream reset")

    relay = relay_stream(source())

    assert next(relay) == b"partial"
    with pytest.raises(StreamRelayError) as excinfo:
        next(relay)
    assert isinstance(excinfo.value.__cause__, RuntimeError)


def test_closing_relay_early_closes_generation_stream() -> None:
    closed: list[bool] = []

    def source() -> Iterator[str]:
        try:
            yield "one"
            yield "two"
            yield "three"
        finally:
            closed.append(True)

    chunks = source()
    first = next(chunks)
    relay = relay_stream(GenerationStream(chunks, first))

    assert next(relay) == b"one"
    relay.close()

    assert closed == [True]


def test_generation_stream_is_single_pass() -> None:
    stream = GenerationStream(iter(["b"]), "a")

    assert list(relay_stream(stream)) == [b"a", b"b"]
    with pytest.raises(RuntimeError):
        iter(stream)
