"""Terminal chat front-end for the RagChat API."""

from __future__ import annotations

import argparse
import sys
from typing import Sequence, TextIO

import httpx

from ragchat.client.session import CHAT_ENDPOINT, ChatSession
from ragchat.config import get_settings
from ragchat.models import Message, Role

QUIT_COMMANDS = {"/quit", "/exit"}


class ReplyPrinter:
    """Writes the growing assistant reply to ``out`` one delta at a time."""

    def __init__(self, out: TextIO) -> None:
        self._out = out
        self._message_id: str | None = None
        self._printed = ""

    def __call__(self, messages: Sequence[Message]) -> None:
        if not messages or messages[-1].role is not Role.ASSISTANT:
            return
        reply = messages[-1]
        if reply.id != self._message_id:
            self._message_id = reply.id
            self._printed = ""
        if not reply.content.startswith(self._printed):
            # Content was replaced (error fallback); start a fresh line.
            self._out.write("\n")
            self._printed = ""
        delta = reply.content[len(self._printed) :]
        if delta:
            self._out.write(delta)
            self._out.flush()
            self._printed = reply.content


def build_parser() -> argparse.ArgumentParser:
    settings = get_settings()
    parser = argparse.ArgumentParser(description="Chat with a RagChat server from the terminal")
    parser.add_argument("--api-url", default=settings.api_url, help="Base URL of the RagChat API")
    parser.add_argument("--endpoint", default=CHAT_ENDPOINT, help="Path of the chat endpoint")
    parser.add_argument(
        "--timeout",
        type=float,
        default=settings.client_timeout_seconds,
        help="Per-request timeout in seconds",
    )
    return parser


def run(session: ChatSession, lines: TextIO, out: TextIO, *, prompt: str = "> ") -> int:
    while True:
        out.write(prompt)
        out.flush()
        line = lines.readline()
        if not line:
            out.write("\n")
            return 0
        text = line.rstrip("\n")
        if text.strip() in QUIT_COMMANDS:
            return 0
        if session.submit(text):
            out.write("\n")


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    printer = ReplyPrinter(sys.stdout)
    with httpx.Client(base_url=args.api_url, timeout=args.timeout) as client:
        session = ChatSession(client, endpoint=args.endpoint, on_update=printer)
        return run(session, sys.stdin, sys.stdout)


if __name__ == "__main__":
    raise SystemExit(main())
