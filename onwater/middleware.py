import time
import uuid

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from .context import current_logger, enter_request, exit_request

REQUEST_ID_HEADER = "X-Request-Id"

SECURITY_HEADERS = {
    "Content-Security-Policy": "default-src 'self';base-uri 'self';frame-ancestors 'self';object-src 'none'",
    "Cross-Origin-Opener-Policy": "same-origin",
    "Cross-Origin-Resource-Policy": "same-origin",
    "Referrer-Policy": "no-referrer",
    "Strict-Transport-Security": "max-age=15552000; includeSubDomains",
    "X-Content-Type-Options": "nosniff",
    "X-DNS-Prefetch-Control": "off",
    "X-Frame-Options": "SAMEORIGIN",
    "X-Permitted-Cross-Domain-Policies": "none",
}


def client_ip(request: Request) -> str | None:
    # Deployed behind a proxy; the first forwarded hop is the caller.
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    return request.client.host if request.client else None


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Scope a request id and child logger to each request and log it on completion."""

    async def dispatch(self, request: Request, call_next):
        start = time.perf_counter()
        request_id = request.headers.get(REQUEST_ID_HEADER, "").strip() or str(uuid.uuid4())
        token = enter_request(request_id)
        log = current_logger()
        status = 500
        try:
            try:
                response = await call_next(request)
            except Exception:
                log.exception("Request failed", fields={"method": request.method, "path": request.url.path})
                raise
            status = response.status_code
            response.headers[REQUEST_ID_HEADER] = request_id
            return response
        finally:
            # Logged once headers are ready; body streaming is not timed.
            log.info(
                "Request handled",
                fields={
                    "duration": round((time.perf_counter() - start) * 1000, 3),
                    "method": request.method,
                    "path": request.url.path,
                    "status": status,
                    "ua": request.headers.get("user-agent"),
                    "ip": client_ip(request),
                },
            )
            exit_request(token)


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        for name, value in SECURITY_HEADERS.items():
            response.headers.setdefault(name, value)
        return response
