"""
Prompt tasks run over transcript and summary columns.

Each task is a fixed template plus sampling parameters.  ``render`` produces
the arguments for :meth:`TextGenerationClient.generate`; ``finish`` applies
the task's post-processing to the model reply.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Tuple

DEFAULT_TEMPERATURE = 0.3
DEFAULT_MAX_TOKENS = 3050

SUMMARIZE_PROMPT = (
    "Given the transcription, produce a concise summary. Transcriptions may have "
    "errors, so use context to interpret. Highlight key subjects, actions, and "
    "crucial details. Identify and convey recurring themes or sentiments. Clarify "
    "any ambiguities in your summary. Transcription: {text}"
)

RANK_PROMPT = (
    "Based on the description of a customer service phone call, rank the "
    "experience from 0 (worst) to 10 (best). Provide only a whole number "
    "without explanation: {text}"
)

INSIGHT_PROMPT = (
    "Analyze this phone call transcription and provide brief, actionable "
    "insights (under 100 words) on improvement: {text}"
)

RANK_MIN = 0
RANK_MAX = 10


def normalize_rank(reply: str) -> str:
    """Reduce a rank reply to a whole number in ``[0, 10]``.

    Replies without any integer are returned unchanged.
    """
    match = re.search(r"-?\d+", reply)
    if not match:
        return reply
    return str(min(RANK_MAX, max(RANK_MIN, int(match.group()))))


@dataclass(frozen=True)
class PromptTask:
    name: str
    template: str
    temperature: float = DEFAULT_TEMPERATURE
    max_tokens: int = DEFAULT_MAX_TOKENS
    postprocess: Optional[Callable[[str], str]] = None

    def render(self, text: str) -> Tuple[str, float, int]:
        return self.template.format(text=text), self.temperature, self.max_tokens

    def finish(self, reply: str) -> str:
        reply = reply.strip()
        return self.postprocess(reply) if self.postprocess else reply


SUMMARIZE = PromptTask("summarize", SUMMARIZE_PROMPT)
RANK = PromptTask("rank", RANK_PROMPT, postprocess=normalize_rank)
INSIGHT = PromptTask("insight", INSIGHT_PROMPT)

TASKS: Dict[str, PromptTask] = {task.name: task for task in (SUMMARIZE, RANK, INSIGHT)}
