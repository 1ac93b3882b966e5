"""Invocation endpoints (v1).

- POST /invoke: buffered JSON response
- POST /stream: text/plain fragments

The raw body is validated here instead of through a FastAPI body model so the
400 payload keeps the bridge's `{"message": "Invalid request", "errors": [...]}`
shape on both transports.
"""

from __future__ import annotations

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse, StreamingResponse

from ...services.invocation import open_stream, run_buffered

router = APIRouter(tags=["invoke"])


@router.post("/invoke")
async def invoke_buffered(request: Request) -> JSONResponse:
    status_code, body = await run_buffered(await request.body())
    return JSONResponse(status_code=status_code, content=body)


@router.post("/stream", response_model=None)
async def invoke_streaming(request: Request) -> StreamingResponse | JSONResponse:
    opening = await open_stream(await request.body())
    if opening.fragments is None:
        return JSONResponse(status_code=opening.status_code, content=opening.body)
    return StreamingResponse(opening.fragments, media_type="text/plain; charset=utf-8")
