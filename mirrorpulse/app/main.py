import datetime
import logging
import time
from contextlib import asynccontextmanager
from typing import Optional

import httpx
from fastapi import FastAPI, HTTPException
from fastapi.responses import HTMLResponse, JSONResponse

from .config import settings
from .groups import GroupBoard
from .models import SiteConfig, SiteConfigError
from .sites import load_site_config
from .ui import render_page

logger = logging.getLogger(__name__)


def configure_logging(level: Optional[str] = None) -> None:
    logging.basicConfig(
        level=(level or settings.LOG_LEVEL).upper(),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )


def create_app(config: Optional[SiteConfig] = None,
               sites_path: Optional[str] = None,
               client: Optional[httpx.AsyncClient] = None,
               interval: Optional[float] = None) -> FastAPI:
    path = sites_path or settings.SITES_PATH
    if config is None:
        config = load_site_config(path)
    board = GroupBoard(config, client=client, interval=interval)
    refresh_s = interval if interval is not None else settings.POLL_INTERVAL_S

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        board.start()
        try:
            yield
        finally:
            await board.aclose()

    app = FastAPI(title="MirrorPulse", lifespan=lifespan)
    app.state.board = board

    @app.get("/", response_class=HTMLResponse)
    def index():
        return HTMLResponse(render_page(settings.PAGE_TITLE, refresh_s))

    @app.get("/health", response_class=JSONResponse)
    def health():
        return JSONResponse({"ok": True, "ts": time.time(),
                             "sites_count": len(board.monitors),
                             "groups_count": len(board.groups)})

    @app.get("/api/status", response_class=JSONResponse)
    def api_status():
        return JSONResponse({
            "timestamp": datetime.datetime.now(datetime.timezone.utc).isoformat(),
            "status": "success",
            "groups": board.render(),
            "summary": board.summary(),
        }, headers={"Cache-Control": "no-store"})

    @app.post("/reload")
    async def reload_config():
        """Re-read the site file; the running board is untouched if it is invalid."""
        try:
            board.reload(load_site_config(path))
        except SiteConfigError as e:
            logger.error(f"Failed to reload site config: {e}")
            raise HTTPException(status_code=400, detail=str(e))
        return {"ok": True, "sites_count": len(board.monitors), "groups_count": len(board.groups)}

    return app
