import logging

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from mpu_relay.config import VERSION
from mpu_relay.deps import get_settings
from mpu_relay.errors import RelayError
from mpu_relay.routers import relay

logger = logging.getLogger(__name__)

_settings = get_settings()


def configure_logging(level: str) -> None:
    """Attach a stderr handler at *level*; uvicorn only configures its own loggers."""
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logging.getLogger("mpu_relay").setLevel(level.upper())


configure_logging(_settings.log_level)

app = FastAPI(
    title="MPU Relay",
    description=(
        "Relays MPU activity records from the site tablets to Grafana Cloud "
        "as Influx line protocol."
    ),
    version=VERSION,
    root_path=_settings.root_path,
)

# The tablet app runs from a file:// or other-origin page, so every response
# (errors included) must carry permissive CORS headers.
_CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
    "Access-Control-Allow-Headers": _settings.cors_allow_headers,
}


@app.middleware("http")
async def add_cors_headers(request: Request, call_next):  # type: ignore[no-untyped-def]
    response = await call_next(request)
    for name, value in _CORS_HEADERS.items():
        response.headers[name] = value
    return response


@app.exception_handler(RelayError)
async def relay_error_handler(request: Request, exc: RelayError) -> JSONResponse:
    """Render validation, configuration and upstream errors as the JSON envelope."""
    logger.warning("%s %s failed (%s): %s", request.method, request.url.path, exc.status_code, exc)
    return JSONResponse(
        {"success": False, "error": str(exc)},
        status_code=exc.status_code,
    )


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Last-resort JSON envelope for anything the routes did not anticipate.

    Starlette runs this handler outside the user middleware, so the CORS
    headers are set here as well.
    """
    logger.exception("%s %s crashed", request.method, request.url.path)
    return JSONResponse(
        {"success": False, "error": str(exc) or exc.__class__.__name__},
        status_code=500,
        headers=_CORS_HEADERS,
    )


app.include_router(relay.router)


def run() -> None:
    """Console entry point: serve the relay with uvicorn."""
    uvicorn.run(
        app,
        host=_settings.host,
        port=_settings.port,
        log_level=_settings.log_level.lower(),
    )
