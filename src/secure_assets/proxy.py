"""
HTTP proxy for protected assets.

Serves ``/api/secure-image?src=<reference>`` so browsers without direct
credentials can load protected images. The proxy shares the resolver's
credential manager, admission gate and fetcher but not its handle cache;
responses are cached downstream through Cache-Control instead.
"""

import logging
from datetime import UTC, datetime

from aiohttp import web

from core.errors.exceptions import ResolutionError
from core.logging.context import clear_log_context, set_log_context
from core.logging.setup import generate_trace_id
from secure_assets.resolver import SecureAssetResolver

logger = logging.getLogger(__name__)

SECURE_IMAGE_PATH = "/api/secure-image"

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type",
}

CACHE_CONTROL = "public, s-maxage=600, stale-while-revalidate=900"
DEFAULT_CONTENT_TYPE = "application/octet-stream"

RESOLVER_KEY = web.AppKey("resolver", SecureAssetResolver)


def _error_response(message: str, status: int) -> web.Response:
    return web.json_response({"error": message}, status=status, headers=CORS_HEADERS)


async def handle_secure_image(request: web.Request) -> web.Response:
    """
    Handle /api/secure-image.

    Returns:
        204 for CORS preflight, 405 for other methods, 400 for a missing or
        unprotected src, the upstream status when it rejected the request,
        502 for any other failure, else 200 with the payload
    """
    if request.method == "OPTIONS":
        return web.Response(status=204, headers=CORS_HEADERS)
    if request.method != "GET":
        return _error_response("Method not allowed", 405)

    resolver = request.app[RESOLVER_KEY]
    src = request.query.get("src")
    if not src:
        return _error_response("Missing src query parameter.", 400)
    if not resolver.should_protect(src):
        return _error_response("Only protected asset URLs are supported.", 400)

    set_log_context(trace_id=generate_trace_id(), component="proxy")
    try:
        async with resolver.gate.slot():
            result = await resolver.fetcher.fetch(src)
    except ResolutionError as e:
        status = e.status_code
        logger.warning(
            f"Secure image proxy failed: {e}",
            extra={
                "reference": src,
                "error_type": type(e).__name__,
                "error_category": e.category.value,
                "http_status": status,
            },
        )
        if status is not None and status >= 400:
            return _error_response(str(e), status)
        return _error_response("Unable to load secure asset.", 502)
    except Exception as e:
        logger.exception(f"Unexpected error in secure image proxy: {e}")
        return _error_response("Unable to load secure asset.", 502)
    finally:
        clear_log_context()

    headers = dict(CORS_HEADERS)
    headers["Content-Type"] = result.content_type or DEFAULT_CONTENT_TYPE
    headers["Cache-Control"] = CACHE_CONTROL
    if result.etag:
        headers["ETag"] = result.etag

    # Content-Length is set by aiohttp from the body
    return web.Response(body=result.content, status=200, headers=headers)


async def handle_health(request: web.Request) -> web.Response:
    """GET /health/live - liveness with resolver diagnostics."""
    resolver = request.app[RESOLVER_KEY]
    return web.json_response(
        {
            "status": "alive",
            "gate": resolver.gate.get_stats(),
            "timestamp": datetime.now(UTC).isoformat(),
        }
    )


def create_proxy_app(resolver: SecureAssetResolver) -> web.Application:
    """Build the aiohttp application; the caller owns the resolver's lifecycle."""
    app = web.Application()
    app[RESOLVER_KEY] = resolver
    app.router.add_route("*", SECURE_IMAGE_PATH, handle_secure_image)
    app.router.add_get("/health/live", handle_health)
    return app


__all__ = ["create_proxy_app", "SECURE_IMAGE_PATH", "CACHE_CONTROL", "CORS_HEADERS"]
