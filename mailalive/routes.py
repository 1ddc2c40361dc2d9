import time

from fastapi import APIRouter, Depends, Request
from fastapi.responses import PlainTextResponse, JSONResponse
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST

from .auth import require_api_key, require_metrics_basic_auth
from .config import APP_VERSION, GIT_SHA, BUILD_DATE
from .context import ProbeContext

router = APIRouter()


def get_context(request: Request) -> ProbeContext:
    return request.app.state.context


@router.get("/health")
def health(_=Depends(require_api_key)):
    return {"status": "ok", "time": int(time.time())}


@router.get("/version")
def version_endpoint(_=Depends(require_api_key)):
    return {"app": APP_VERSION, "revision": GIT_SHA, "build_date": BUILD_DATE}


@router.get("/info", response_class=JSONResponse)
def info(ctx: ProbeContext = Depends(get_context), _=Depends(require_api_key)):
    cfg = ctx.config
    cached = ctx.cache.peek()
    return {
        "project": "mail-alive-exporter",
        "version": {
            "app": APP_VERSION,
            "revision": GIT_SHA,
            "build_date": BUILD_DATE,
        },
        "config": {
            "path": cfg.path,
            "backend": cfg.sender.backend,
            "mailbox": f"{cfg.imap.username}@{cfg.imap.host}/{cfg.imap.folder}",
            "send_interval_seconds": cfg.exporter.send_interval_seconds,
            "cache_flush_interval_seconds": cfg.exporter.cache_flush_interval_seconds,
        },
        "loops": {
            "probe_send": ctx.send_task.running,
            "cache_flush": ctx.flush_task.running,
        },
        "cached_status": cached.model_dump() if cached is not None else None,
    }


@router.get("/metrics", response_class=PlainTextResponse)
def metrics(ctx: ProbeContext = Depends(get_context), _=Depends(require_metrics_basic_auth)):
    # may block on IMAP while the status gauges reconcile; must stay a sync (threadpool) route
    output = generate_latest(ctx.metrics.registry)
    return PlainTextResponse(content=output, media_type=CONTENT_TYPE_LATEST)
