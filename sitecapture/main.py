"""FastAPI application entrypoint."""
from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any

from fastapi import Depends, FastAPI, HTTPException, Request, status
from fastapi.responses import HTMLResponse, JSONResponse, StreamingResponse
from fastapi.templating import Jinja2Templates
from playwright.async_api import async_playwright
from pydantic import BaseModel, ConfigDict, Field

from .batch import BatchRunner, UnknownSiteError
from .broadcaster import LogBroadcaster
from .config import get_settings, load_devices, load_sites
from .devices import DeviceTable
from .logging_setup import configure_logging

LOG_FILE_PATH = configure_logging(os.getenv("LOG_LEVEL"))
logger = logging.getLogger(__name__)
logger.info("Logging configured. File output: %s", LOG_FILE_PATH)

TEMPLATES = Jinja2Templates(directory=str(Path(__file__).resolve().parent / "templates"))
INVALID_SITE_MESSAGE = "Invalid site selected"

broadcaster = LogBroadcaster()


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    sites = load_sites(settings.sites_path)
    devices = load_devices(settings.devices_path)

    playwright = await async_playwright().start()
    try:
        table = DeviceTable(builtin=playwright.devices)

        async def launch_browser():
            logger.info("Launching Chromium (headless=%s)", settings.headless)
            return await playwright.chromium.launch(headless=settings.headless)

        app.state.runner = BatchRunner(
            sites=sites,
            devices=devices,
            table=table,
            broadcaster=broadcaster,
            launch_browser=launch_browser,
            output_root=settings.output_root,
            nav_timeout_ms=settings.nav_timeout_ms,
            settle_delay_ms=settings.settle_delay_ms,
            sitemap_timeout=settings.sitemap_timeout,
        )
        logger.info("Ready with sites %s and %d device(s)", sorted(sites), len(devices))
        yield
    finally:
        await playwright.stop()


app = FastAPI(title="Site Capture", lifespan=lifespan)


class RunRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    site_key: Any = Field(default=None, alias="siteKey")

    @property
    def key(self) -> str:
        return self.site_key if isinstance(self.site_key, str) else ""


def get_batch_runner(request: Request) -> BatchRunner:
    runner = getattr(request.app.state, "runner", None)
    if runner is None:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Service is starting")
    return runner


def get_broadcaster() -> LogBroadcaster:
    return broadcaster


@app.get("/", response_class=HTMLResponse)
def index(request: Request, runner: BatchRunner = Depends(get_batch_runner)) -> HTMLResponse:
    return TEMPLATES.TemplateResponse(
        request,
        "index.html",
        {"sites": runner.site_keys, "devices": [device.name for device in runner.devices]},
    )


@app.post("/run")
async def run_batch(
    payload: RunRequest | None = None,
    runner: BatchRunner = Depends(get_batch_runner),
) -> JSONResponse:
    site_key = payload.key if payload is not None else ""
    try:
        result = await runner.run(site_key)
    except UnknownSiteError:
        logger.info("Rejected run for unknown site %r", site_key)
        return JSONResponse(status_code=400, content={"message": INVALID_SITE_MESSAGE})
    except Exception as exc:
        logger.exception("Batch for %s failed: %s", site_key, exc)
        return JSONResponse(status_code=500, content={"message": str(exc)})

    return JSONResponse(
        content={
            "message": f"Output saved in: {result.folder}",
            "pages": len(result.pages),
            "failedPages": len(result.failed_pages),
        }
    )


@app.get("/logs")
async def stream_logs(
    request: Request,
    hub: LogBroadcaster = Depends(get_broadcaster),
) -> StreamingResponse:
    queue = hub.subscribe()
    return StreamingResponse(
        hub.event_stream(queue, request.is_disconnected),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "Connection": "keep-alive"},
    )


def serve() -> None:  # pragma: no cover - manual entrypoint
    import uvicorn

    uvicorn.run(
        "sitecapture.main:app",
        host=os.getenv("HOST", "127.0.0.1"),
        port=int(os.getenv("PORT", "3000")),
    )


if __name__ == "__main__":  # pragma: no cover - manual script usage
    serve()
