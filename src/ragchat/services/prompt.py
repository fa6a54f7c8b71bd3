"""Prompt composition from retrieved context and the latest user message."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Sequence

from ragchat.models import RetrievedDocument

DEFAULT_INSTRUCTION = (
    "I am giving you the context of the question , only give answer for the message "
    "according to the context given"
)

PROMPT_TEMPLATE = """{instruction}
-----------------------------
START_CONTEXT
{context}
END_CONTEXT
-------------------------------
Based on the context above, please respond to: {message}
"""


@dataclass(frozen=True)
class PromptComposerConfig:
    """Configuration for prompt construction."""

    instruction: str = DEFAULT_INSTRUCTION
    separator: str = "\n"


class PromptComposer:
    """Builds the single generation prompt for a chat turn.

    The context block is the newline-joined document texts rendered as a JSON
    string literal, so multi-line context stays on one line between the
    markers and an empty result renders as ``""``. The message is inserted
    verbatim.
    """

    def __init__(self, config: PromptComposerConfig | None = None) -> None:
        self._config = config or PromptComposerConfig()

    def build_context(self, documents: Sequence[RetrievedDocument]) -> str:
        joined = self._config.separator.join(document.text for document in documents)
        return json.dumps(joined, ensure_ascii=False)

    def compose(self, documents: Sequence[RetrievedDocument], message: str) -> str:
        # Substituted values are not re-scanned for braces.
        return PROMPT_TEMPLATE.format(
            instruction=self._config.instruction,
            context=self.build_context(documents),
            message=message,
        )
