from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from pathlib import Path
from time import perf_counter
from typing import Any

from tandem.service import MultiHopService

LOGGER = logging.getLogger(__name__)

RUBRIC_CRITERIA = (
    "CS-043",
    "CD-100 or Responsivity",
    "Primary staff handling",
    "Avoids hallucination",
    "Grievance fallback",
    "Cites sources",
    "No unrelated policy",
)

_HALLUCINATION_MARKERS = (
    re.compile(r"physical force", re.IGNORECASE),
    re.compile(r"performance improvement plan", re.IGNORECASE),
    re.compile(r"training plan", re.IGNORECASE),
    re.compile(r"CCC-020", re.IGNORECASE),
)
_UNRELATED_POLICY_MARKERS = (
    re.compile(r"eligibility to work at facility", re.IGNORECASE),
    re.compile(r"advisory board as first step", re.IGNORECASE),
    re.compile(r"CCC-020", re.IGNORECASE),
)


@dataclass(frozen=True)
class EvalCase:
    name: str
    question: str
    category: str = "general"


DEFAULT_EVAL_CASES = (
    EvalCase(
        name="supervision_conflict",
        question=(
            "What process would handle a situation where Robert's son working in "
            "his business led to conflict with supervision requirements?"
        ),
        category="supervision",
    ),
)


def evaluate_answer(answer: object) -> dict[str, Any]:
    if not isinstance(answer, str) or not answer.strip():
        return {
            "total_score": 0,
            "criteria": {name: False for name in RUBRIC_CRITERIA},
            "error": "Invalid or empty answer provided.",
        }

    criteria = {
        "CS-043": "CS-043" in answer,
        "CD-100 or Responsivity": bool(
            re.search(r"CD-100|Responsivity", answer, re.IGNORECASE)
        ),
        "Primary staff handling": bool(re.search(r"staff", answer, re.IGNORECASE))
        and bool(re.search(r"document|refer", answer, re.IGNORECASE)),
        "Avoids hallucination": not any(
            pattern.search(answer) for pattern in _HALLUCINATION_MARKERS
        ),
        "Grievance fallback": bool(re.search(r"grievance", answer, re.IGNORECASE)),
        "Cites sources": bool(
            re.search(r"CS-|CD-|Principle|Grievance Policy", answer, re.IGNORECASE)
        ),
        "No unrelated policy": not any(
            pattern.search(answer) for pattern in _UNRELATED_POLICY_MARKERS
        ),
    }
    return {
        "total_score": sum(1 for passed in criteria.values() if passed),
        "criteria": criteria,
    }


async def run_evaluation(
    service: MultiHopService,
    cases: tuple[EvalCase, ...] = DEFAULT_EVAL_CASES,
) -> dict[str, Any]:
    results: list[dict[str, Any]] = []
    for case in cases:
        started = perf_counter()
        try:
            response = await service.run_query(case.question)
        except Exception as exc:  # noqa: BLE001
            LOGGER.warning(
                "Evaluation case failed",
                exc_info=exc,
                extra={"case": case.name},
            )
            results.append(
                {
                    "name": case.name,
                    "category": case.category,
                    "question": case.question,
                    "answer": None,
                    "total_score": 0,
                    "criteria": {},
                    "error": str(exc),
                }
            )
            continue

        results.append(
            {
                "name": case.name,
                "category": case.category,
                "question": case.question,
                "answer": response.answer_text,
                "provider_used": response.provider_used.value,
                "evidence_count": len(response.evidence),
                "hop_count": len(response.hops),
                "processing_time_ms": int((perf_counter() - started) * 1000),
                **evaluate_answer(response.answer_text),
            }
        )

    max_score = len(RUBRIC_CRITERIA) * len(results)
    total = sum(int(row.get("total_score", 0)) for row in results)
    return {
        "case_count": len(results),
        "total_score": total,
        "max_score": max_score,
        "results": results,
    }


def load_eval_cases(path: str | Path) -> tuple[EvalCase, ...]:
    with Path(path).open("r", encoding="utf-8") as handle:
        payload = json.load(handle)

    rows = payload.get("test_questions") if isinstance(payload, dict) else payload
    if not isinstance(rows, list):
        return tuple()

    cases: list[EvalCase] = []
    for index, row in enumerate(rows, start=1):
        if not isinstance(row, dict):
            continue
        question = row.get("question")
        if not isinstance(question, str) or not question.strip():
            continue
        name = row.get("id", row.get("name", f"case-{index}"))
        category = row.get("category")
        cases.append(
            EvalCase(
                name=str(name),
                question=question.strip(),
                category=category if isinstance(category, str) else "general",
            )
        )
    return tuple(cases)
