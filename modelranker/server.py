"""HTTP API for the AI Model Ranker.

Two operations back the UI: ``POST /api/generate`` fans a prompt out to the selected
models, ``POST /api/evaluate`` cross-evaluates the responses and returns the ranking.
Any request-level failure is answered with ``500 {"error": ...}``.
"""

from __future__ import annotations

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from .generate import generate_all
from .models import MODEL_IDS
from .results import ModelResponse
from .run import run_evaluation
from .schemas import EvaluateRequest, GenerateRequest, HealthResponse

__all__: list[str] = ["app", "run"]

app = FastAPI(title="AI Model Ranker API", description="Generate, cross-evaluate and rank LLM responses", version="1.0.0")


def _error(message: str) -> JSONResponse:
    return JSONResponse(status_code=500, content={"error": message or "Unknown error"})


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    print(f"  [ERROR] {request.url.path}: invalid request body", flush=True)
    details = "; ".join(f"{'.'.join(str(p) for p in err.get('loc', ()))}: {err.get('msg', '')}" for err in exc.errors())
    return _error(f"Invalid request: {details}")


@app.get("/health", tags=["system"], response_model=HealthResponse)
def health() -> dict:
    """Simple health-check endpoint."""

    return {"status": "ok", "models": MODEL_IDS}


@app.post("/api/generate", tags=["ranking"])
async def generate_endpoint(body: GenerateRequest):
    try:
        results = await generate_all(body.models, body.prompt, body.images)
        return {"results": [r.to_dict() for r in results]}
    except Exception as e:
        print(f"  [ERROR] Generation error: {type(e).__name__}: {e}", flush=True)
        return _error(str(e))


@app.post("/api/evaluate", tags=["ranking"])
async def evaluate_endpoint(body: EvaluateRequest):
    try:
        responses = [ModelResponse(model=r.model, response=r.response) for r in body.responses]
        return await run_evaluation(responses, body.original_prompt)
    except Exception as e:
        print(f"  [ERROR] Evaluation error: {type(e).__name__}: {e}", flush=True)
        return _error(str(e))


def run(host: str = "127.0.0.1", port: int = 8000, reload: bool = False) -> None:  # pragma: no cover
    """Launch an in-process Uvicorn server."""

    uvicorn.run("modelranker.server:app", host=host, port=port, reload=reload)
