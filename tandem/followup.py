from __future__ import annotations

import json
import logging
import re
from collections.abc import Callable
from dataclasses import dataclass

from tandem.llm.invoker import GenerationInvoker, TotalGenerationFailure
from tandem.models import GenerationRequest, Passage, ProviderRole
from tandem.prompts import build_followup_prompt

LOGGER = logging.getLogger(__name__)

_CODE_FENCE_RE = re.compile(r"^```[a-zA-Z]*\s*(.*?)\s*```$", re.DOTALL)
_QUOTED_QUESTION_RE = re.compile(r"[\"“]([^\"“”\n]+?\?)[\"”]")
_QUESTION_SENTENCE_RE = re.compile(
    r"(?:^|(?<=[.!?])[ \t]+)((?:[^.!?\n]|[.!?](?=\S))+\?)", re.MULTILINE
)
_LIST_PREFIX_RE = re.compile(r"^(?:\d+[.)]|[-*•])\s*")
_WORD_RE = re.compile(r"[A-Za-z0-9]")


@dataclass(frozen=True)
class FollowupParse:
    ok: bool
    questions: tuple[str, ...]
    strategy: str


@dataclass(frozen=True)
class FollowupOutcome:
    questions: tuple[str, ...]
    strategy: str
    provider_used: ProviderRole | None = None
    error: str | None = None


def parse_json_list(text: str) -> FollowupParse:
    candidate = text.strip()
    fenced = _CODE_FENCE_RE.match(candidate)
    if fenced:
        candidate = fenced.group(1)
    try:
        payload = json.loads(candidate)
    except ValueError:
        return _failed("json_list")
    if isinstance(payload, dict) and isinstance(payload.get("questions"), list):
        payload = payload["questions"]
    if not isinstance(payload, list):
        return _failed("json_list")
    questions = [item.strip() for item in payload if isinstance(item, str)]
    return _from_candidates("json_list", questions)


def parse_quoted_questions(text: str) -> FollowupParse:
    questions = [match.strip() for match in _QUOTED_QUESTION_RE.findall(text)]
    return _from_candidates("quoted_questions", questions)


def parse_question_sentences(text: str) -> FollowupParse:
    questions: list[str] = []
    for match in _QUESTION_SENTENCE_RE.findall(text):
        cleaned = _LIST_PREFIX_RE.sub("", match.strip()).strip().strip("\"'")
        questions.append(cleaned)
    return _from_candidates("question_sentences", questions)


FOLLOWUP_PARSERS: tuple[Callable[[str], FollowupParse], ...] = (
    parse_json_list,
    parse_quoted_questions,
    parse_question_sentences,
)


def parse_followup_questions(text: str, max_questions: int) -> FollowupParse:
    for parser in FOLLOWUP_PARSERS:
        parsed = parser(text)
        if parsed.ok:
            return FollowupParse(
                ok=True,
                questions=parsed.questions[: max(max_questions, 0)],
                strategy=parsed.strategy,
            )
    return _failed("none")


async def synthesize_followups(
    *,
    question: str,
    evidence: list[Passage],
    invoker: GenerationInvoker,
    max_questions: int,
) -> FollowupOutcome:
    prompt = build_followup_prompt(question, evidence, max_questions)
    try:
        result = await invoker.generate(GenerationRequest(prompt_text=prompt))
    except TotalGenerationFailure as exc:
        LOGGER.warning(
            "Follow-up synthesis failed on both providers; continuing single-hop",
            exc_info=exc,
        )
        return FollowupOutcome(questions=tuple(), strategy="none", error=str(exc))

    parsed = parse_followup_questions(result.text, max_questions)
    if not parsed.ok:
        LOGGER.info(
            "Follow-up response could not be parsed into questions",
            extra={"provider": result.provider_name},
        )
    return FollowupOutcome(
        questions=parsed.questions,
        strategy=parsed.strategy,
        provider_used=result.provider_used,
    )


def _from_candidates(strategy: str, candidates: list[str]) -> FollowupParse:
    questions = tuple(item for item in candidates if _WORD_RE.search(item))
    if not questions:
        return _failed(strategy)
    return FollowupParse(ok=True, questions=questions, strategy=strategy)


def _failed(strategy: str) -> FollowupParse:
    return FollowupParse(ok=False, questions=tuple(), strategy=strategy)
