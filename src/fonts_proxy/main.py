"""FastAPI application for the Google Fonts proxy."""

import logging
import os

from fastapi import FastAPI, Request, Response
from fastapi.responses import PlainTextResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from fonts_proxy.config import ProxySettings
from fonts_proxy.response_cache import ResponseCache
from fonts_proxy.routes import pages, proxy

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)


async def plain_text_http_exception(request: Request, exc: StarletteHTTPException) -> Response:
    """Render HTTP errors as plain text instead of JSON."""
    headers = getattr(exc, "headers", None)
    if exc.status_code in {204, 304}:
        return Response(status_code=exc.status_code, headers=headers)
    return PlainTextResponse(str(exc.detail), status_code=exc.status_code, headers=headers)


def create_app(settings: ProxySettings | None = None) -> FastAPI:
    """Create the proxy application.

    Args:
        settings: Settings used to set up the response cache
            (defaults to the environment)
    """
    settings = settings or ProxySettings.from_env()

    app = FastAPI(
        title="Google Fonts Proxy",
        description="Caching reverse proxy for Google Fonts stylesheets and font files",
    )
    app.state.response_cache = ResponseCache(settings.cache_dir)
    app.add_exception_handler(StarletteHTTPException, plain_text_http_exception)

    # Include routers (the proxy router ends with a catch-all route)
    app.include_router(pages.router, tags=["pages"])
    app.include_router(proxy.router, tags=["proxy"])
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("fonts_proxy.main:app", host="0.0.0.0", port=8000, reload=True)
