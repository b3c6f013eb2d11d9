# ruff: noqa: E402

from __future__ import annotations

import argparse
import asyncio
import json
from datetime import datetime, timezone
from pathlib import Path
from time import perf_counter
import sys

REPO_ROOT = Path(__file__).resolve().parents[2]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from tandem.config import load_config
from tandem.context import build_runtime_context
from tandem.evaluation import evaluate_answer, load_eval_cases
from tandem.service import MultiHopService


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Run every test question through the multi-hop pipeline."
    )
    parser.add_argument(
        "--questions",
        default=str(REPO_ROOT / "data" / "eval" / "test_questions.json"),
    )
    parser.add_argument("--output-dir", default=str(REPO_ROOT / "data" / "eval" / "runs"))
    return parser.parse_args()


async def _run(questions_path: str) -> dict[str, object]:
    cases = load_eval_cases(questions_path)
    service = MultiHopService(build_runtime_context(load_config()))
    results: list[dict[str, object]] = []
    for index, case in enumerate(cases, start=1):
        print(f"[{index}/{len(cases)}] {case.category}: {case.question}")
        started = perf_counter()
        try:
            response = await service.run_query(case.question)
        except Exception as exc:  # noqa: BLE001
            print(f"  failed: {exc}")
            results.append(
                {
                    "id": case.name,
                    "category": case.category,
                    "question": case.question,
                    "error": str(exc),
                    "timestamp": _now(),
                }
            )
            continue
        processing_time_ms = int((perf_counter() - started) * 1000)
        print(
            f"  provider={response.provider_used.value} "
            f"sources={len(response.evidence)} hops={len(response.hops)} "
            f"time={processing_time_ms}ms"
        )
        results.append(
            {
                "id": case.name,
                "category": case.category,
                "question": case.question,
                "answer": response.answer_text,
                "provider": response.provider_used.value,
                "sources_count": len(response.evidence),
                "hops": [hop.model_dump() for hop in response.hops],
                "processing_time_ms": processing_time_ms,
                "score": evaluate_answer(response.answer_text)["total_score"],
                "timestamp": _now(),
            }
        )

    succeeded = [row for row in results if "error" not in row]
    return {
        "test_run": {
            "timestamp": _now(),
            "total_questions": len(cases),
            "categories": sorted({case.category for case in cases}),
        },
        "summary": {
            "succeeded": len(succeeded),
            "failed": len(results) - len(succeeded),
        },
        "results": results,
    }


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def main() -> int:
    args = _parse_args()
    report = asyncio.run(_run(args.questions))
    output_dir = Path(args.output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    stamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%SZ")
    output_path = output_dir / f"test_results_{stamp}.json"
    with output_path.open("w", encoding="utf-8") as handle:
        json.dump(report, handle, indent=2)
    print(f"Results written to {output_path}")
    return 0 if report["summary"]["failed"] == 0 else 1


if __name__ == "__main__":
    sys.exit(main())
