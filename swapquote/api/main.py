"""FastAPI application for the swap quoter.

Note: Rate limiting of callers is not implemented at the application level.
It belongs to the reverse proxy in front of the service.
"""

import os

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from swapquote import __version__
from swapquote.api.endpoints import router
from swapquote.config import Settings
from swapquote.log import configure_logging

# Configuration from environment variables with sensible defaults
HOST = os.environ.get("SWAPQUOTE_HOST", "0.0.0.0")
PORT = int(os.environ.get("SWAPQUOTE_PORT", "8000"))
DEBUG = os.environ.get("SWAPQUOTE_DEBUG", "false").lower() in ("true", "1", "yes")

# Maximum request body size (64 KB); quote requests are a handful of fields
MAX_REQUEST_SIZE = 64 * 1024

app = FastAPI(
    title="SwapQuote",
    description="Multi-AMM swap quoter for Uniswap V2, V3 and V4 pools",
    version=__version__,
)


@app.middleware("http")
async def limit_request_size(request: Request, call_next):  # type: ignore[no-untyped-def]
    """Reject requests with body larger than MAX_REQUEST_SIZE."""
    content_length = request.headers.get("content-length")
    if content_length:
        try:
            size = int(content_length)
        except ValueError:
            return JSONResponse(status_code=400, content={"detail": "Invalid Content-Length header"})
        if size > MAX_REQUEST_SIZE:
            return JSONResponse(status_code=413, content={"detail": "Request too large"})
    return await call_next(request)


app.include_router(router)


@app.get("/health")
async def health() -> dict[str, object]:
    """Health check endpoint."""
    return {"status": "ok", "version": __version__}


def run() -> None:
    """Run the quoter API server.

    Configuration via environment variables:
    - SWAPQUOTE_HOST: Host to bind to (default: 0.0.0.0)
    - SWAPQUOTE_PORT: Port to bind to (default: 8000)
    - SWAPQUOTE_DEBUG: Enable debug/reload mode (default: false)
    - SWAPQUOTE_LOG_LEVEL / SWAPQUOTE_LOG_JSON: Logging output

    Quoter settings are read by Settings.from_env(); see swapquote.config.
    """
    settings = Settings.from_env()
    configure_logging(settings.log_level, json=settings.log_json)
    uvicorn.run(
        "swapquote.api.main:app",
        host=HOST,
        port=PORT,
        reload=DEBUG,
    )


if __name__ == "__main__":
    run()
