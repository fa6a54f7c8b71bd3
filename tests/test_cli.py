from __future__ import annotations

from io import StringIO

import httpx

from ragchat.client import ERROR_REPLY, ChatSession
from ragchat.client.cli import ReplyPrinter, build_parser, run
from ragchat.models import Message, Role


def test_reply_printer_writes_only_new_text():
    out = StringIO()
    printer = ReplyPrinter(out)

    printer([Message(id="u", role=Role.USER, content="hi")])
    printer([Message(id="a", role=Role.ASSISTANT, content="")])
    printer([Message(id="a", role=Role.ASSISTANT, content="Hel")])
    printer([Message(id="a", role=Role.ASSISTANT, content="Hello")])

    assert out.getvalue() == "Hello"


def test_reply_printer_restarts_line_when_reply_is_replaced():
    out = StringIO()
    printer = ReplyPrinter(out)

    printer([Message(id="a", role=Role.ASSISTANT, content="partial")])
    printer([Message(id="a", role=Role.ASSISTANT, content=ERROR_REPLY)])

    assert out.getvalue() == f"partial\n{ERROR_REPLY}"


def test_run_submits_lines_until_quit():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=iter([b"Hi", b" there"]))

    out = StringIO()
    client = httpx.Client(transport=httpx.MockTransport(handler), base_url="http://ragchat.test")
    session = ChatSession(client, on_update=ReplyPrinter(out))

    status = run(session, StringIO("hello\n\n/quit\nignored\n"), out, prompt="")

    assert status == 0
    assert [m.content for m in session.messages] == ["hello", "Hi there"]
    assert "Hi there" in out.getvalue()


def test_parser_defaults():
    args = build_parser().parse_args(["--api-url", "http://example.test:9000"])
    assert args.api_url == "http://example.test:9000"
    assert args.endpoint == "/api/chat"
