import argparse
import sys
from typing import List, Optional

import uvicorn
from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

from .config import ExporterConfig, APP_VERSION, GIT_SHA, BUILD_DATE, resolve_config_path
from .context import ProbeContext
from .errors import ConfigError
from .logging_setup import logger, DEBUG
from .routes import router


def create_app(context: ProbeContext, start_loops: bool = True) -> FastAPI:
    app = FastAPI(title="Mail Alive Exporter", version=APP_VERSION)
    app.state.context = context
    app.include_router(router)

    @app.on_event("startup")
    def on_startup():
        logger.info(f"Starting Mail Alive Exporter v{APP_VERSION} rev={GIT_SHA or 'n/a'} build_date={BUILD_DATE or 'n/a'} DEBUG={DEBUG}")
        if start_loops:
            context.start()

    @app.on_event("shutdown")
    def on_shutdown():
        context.stop()

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        detail = exc.detail if isinstance(exc.detail, dict) else {"error": str(exc.detail)}
        return JSONResponse(status_code=exc.status_code, content=detail, headers=exc.headers)

    return app


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="mail-alive-exporter", description="End-to-end mail delivery probe exporter")
    parser.add_argument("config", nargs="?", default=None, help="path to the YAML config (default: $CONFIG_PATH or config.yaml)")
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> None:
    args = parse_args(argv)
    config_path = resolve_config_path(args.config)
    try:
        config = ExporterConfig.load(config_path)
    except ConfigError as e:
        logger.error(f"error parsing config: {e}")
        sys.exit(1)

    app = create_app(ProbeContext.from_config(config))
    exporter = config.exporter
    logger.info(f"Listening on {exporter.listen_addr}:{exporter.listen_port}")
    uvicorn.run(app, host=exporter.listen_addr, port=exporter.listen_port, log_level="debug" if DEBUG else "info")


if __name__ == "__main__":
    main()
