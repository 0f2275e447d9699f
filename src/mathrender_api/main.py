"""Main FastAPI application for the Math Render API."""

import json
from functools import lru_cache

from fastapi import Depends, FastAPI, Request
from fastapi.responses import Response
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import __version__
from .config import get_settings
from .services.gateway import CORS_HEADERS, Gateway, build_gateway

SERVICE_NAME = "mathrender-api"
VERSION = __version__

# Initialize FastAPI app
app = FastAPI(
    title="Math Render API",
    description="Convert LaTeX or MathML into MathML, SVG, PNG or assistive SVG",
    version=VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
)


@lru_cache
def get_gateway() -> Gateway:
    """Process-wide gateway built from the (frozen) settings."""
    return build_gateway(get_settings())


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> Response:
    """Render routing errors (404, 405) with the same body as conversion errors."""
    headers = {**CORS_HEADERS, **(exc.headers or {}), "Content-Type": "application/json"}
    return Response(
        content=json.dumps({"message": str(exc.detail)}),
        status_code=exc.status_code,
        headers=headers,
    )


@app.get("/")
async def root():
    """Root endpoint with API information."""
    return {
        "message": "Math Render API",
        "version": VERSION,
        "endpoints": {"render": "/render", "docs": "/docs", "health": "/health"},
    }


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "service": SERVICE_NAME}


@app.api_route("/render", methods=["GET", "POST", "OPTIONS"])
async def render(request: Request, gateway: Gateway = Depends(get_gateway)) -> Response:
    """
    Convert math notation.

    GET takes its fields from the query string, POST from a JSON body:
    ``input`` (or ``type``), ``inline``, ``source``, ``output``, ``width``,
    ``height`` and, for POST only, ``config``. When ``output`` is omitted it
    is negotiated from the ``Accept`` header.

    Returns:
        The converted payload with its content type, or ``{"message": ...}``
        with the error status
    """
    body = await request.body()
    result = await gateway.handle(
        request.method,
        query=dict(request.query_params),
        body=body,
        headers=dict(request.headers),
    )
    return Response(
        content=result.content,
        status_code=result.status_code,
        headers=result.headers,
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
