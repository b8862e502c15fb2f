from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from nativenest.core.ctx import ROUTE_CTX, CLIENT_IP_CTX, REDIS_CTX


def client_ip(request: Request) -> str | None:
    xff = request.headers.get("x-forwarded-for")
    if xff:
        return xff.split(",")[0].strip()
    return request.client.host if request.client else None


def http_route(request: Request) -> str:
    return f"{request.method} {request.url.path}"


class HttpContextMiddleware(BaseHTTPMiddleware):
    """Exposes route, client ip and the shared redis client to audit emitters."""

    async def dispatch(self, request: Request, call_next):
        tokens: list[tuple] = [
            (ROUTE_CTX, ROUTE_CTX.set(http_route(request))),
            (CLIENT_IP_CTX, CLIENT_IP_CTX.set(client_ip(request))),
        ]
        redis_client = getattr(request.app.state, "redis", None)
        if redis_client is not None:
            tokens.append((REDIS_CTX, REDIS_CTX.set(redis_client)))
        try:
            return await call_next(request)
        finally:
            for var, token in reversed(tokens):
                var.reset(token)
