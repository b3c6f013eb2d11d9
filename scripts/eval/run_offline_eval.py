# ruff: noqa: E402

from __future__ import annotations

import asyncio
import json
from pathlib import Path
import sys

REPO_ROOT = Path(__file__).resolve().parents[2]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from tandem.config import load_config
from tandem.context import build_runtime_context
from tandem.evaluation import run_evaluation
from tandem.service import MultiHopService


def main() -> int:
    service = MultiHopService(build_runtime_context(load_config()))
    report = asyncio.run(run_evaluation(service))
    print(json.dumps(report, indent=2))
    return 0 if report["case_count"] and report["total_score"] > 0 else 1


if __name__ == "__main__":
    sys.exit(main())
