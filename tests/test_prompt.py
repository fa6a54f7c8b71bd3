from __future__ import annotations

from ragchat.models import RetrievedDocument
from ragchat.services.prompt import DEFAULT_INSTRUCTION, PromptComposer


def _docs(*texts: str) -> list[RetrievedDocument]:
    return [RetrievedDocument(text=text) for text in texts]


def test_prompt_contains_instruction_context_and_message() -> None:
    prompt = PromptComposer().compose(_docs("first line", "second line"), "What is up?")

    assert prompt.startswith(DEFAULT_INSTRUCTION)
    assert 'START_CONTEXT\n"first line\\nsecond line"\nEND_CONTEXT' in prompt
    assert prompt.rstrip("\n").endswith("Based on the context above, please respond to: What is up?")
    assert prompt.index(DEFAULT_INSTRUCTION) < prompt.index("START_CONTEXT") < prompt.index("What is up?")


def test_prompt_is_deterministic() -> None:
    composer = PromptComposer()
    documents = _docs("alpha", "beta")

    assert composer.compose(documents, "hi") == composer.compose(documents, "hi")
    assert PromptComposer().compose(documents, "hi") == composer.compose(documents, "hi")


def test_empty_context_renders_empty_block() -> None:
    prompt = PromptComposer().compose([], "hello")

    assert 'START_CONTEXT\n""\nEND_CONTEXT' in prompt


def test_message_is_inserted_verbatim() -> None:
    message = 'Use {braces} and "quotes"\nacross lines'

    prompt = PromptComposer().compose(_docs("ctx"), message)

    assert message in prompt


def test_default_instruction_leads_the_prompt() -> None:
    prompt = PromptComposer().compose([], "hi")

    assert prompt.startswith(
        "I am giving you the context of the question , only give answer for the message "
        "according to the context given\n"
    )
