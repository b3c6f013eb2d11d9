from __future__ import annotations

import os
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import uvicorn
from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse, RedirectResponse

from tandem.config import AppConfig, load_config
from tandem.context import build_runtime_context
from tandem.evaluation import run_evaluation
from tandem.llm.invoker import TotalGenerationFailure
from tandem.models import QueryRequest
from tandem.readiness import build_readiness_report
from tandem.service import InvalidQuestionError, MultiHopService

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 8000


@asynccontextmanager
async def lifespan(application: FastAPI) -> AsyncIterator[None]:
    config = load_config()
    application.state.config = config
    application.state.service = MultiHopService(build_runtime_context(config))
    yield


app = FastAPI(title="Tandem Multi-Hop RAG", version="0.1.0", lifespan=lifespan)


def get_config(request: Request) -> AppConfig:
    return request.app.state.config


def get_service(request: Request) -> MultiHopService:
    return request.app.state.service


@app.get("/")
async def root() -> RedirectResponse:
    return RedirectResponse(url="/docs", status_code=307)


@app.get("/health")
async def health() -> dict[str, bool]:
    return {"ok": True}


@app.get("/ready")
async def readiness(
    config: AppConfig = Depends(get_config),
    service: MultiHopService = Depends(get_service),
) -> JSONResponse:
    report = await build_readiness_report(config, service.context)
    status_code = 200 if bool(report.get("ready")) else 503
    return JSONResponse(content=report, status_code=status_code)


@app.post("/api/query")
async def query(
    payload: QueryRequest,
    service: MultiHopService = Depends(get_service),
) -> JSONResponse:
    try:
        result = await service.run_query(payload.question)
    except InvalidQuestionError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except TotalGenerationFailure as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc
    return JSONResponse(content=result.model_dump(mode="json"))


@app.get("/api/evaluate")
async def evaluate(service: MultiHopService = Depends(get_service)) -> JSONResponse:
    report = await run_evaluation(service)
    return JSONResponse(content=report)


def _read_server_host() -> str:
    configured_host = os.getenv("TANDEM_HOST", DEFAULT_HOST).strip()
    if not configured_host:
        raise ValueError("TANDEM_HOST must not be empty")
    return configured_host


def _read_server_port() -> int:
    configured_port = os.getenv("TANDEM_PORT", str(DEFAULT_PORT)).strip()
    port = int(configured_port)
    if port <= 0:
        raise ValueError("TANDEM_PORT must be greater than zero")
    return port


def run() -> None:
    uvicorn.run("main:app", host=_read_server_host(), port=_read_server_port(), reload=False)


if __name__ == "__main__":
    run()
