import re
import uuid
from starlette.middleware.base import BaseHTTPMiddleware
from nativenest.core.ctx import REQUEST_ID_CTX

# the id lands in audit records and problem+json bodies, so only short opaque tokens are trusted
_SAFE_REQUEST_ID = re.compile(r"^[A-Za-z0-9._-]{1,64}$")


def resolve_request_id(incoming: str | None) -> str:
    if incoming and _SAFE_REQUEST_ID.match(incoming):
        return incoming
    return uuid.uuid4().hex


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Propagates a well-formed caller request id, or mints one, and echoes it back."""

    def __init__(self, app, header_name: str = "X-Request-ID"):
        super().__init__(app)
        self.header_name = header_name

    async def dispatch(self, request, call_next):
        rid = resolve_request_id(request.headers.get(self.header_name))
        token = REQUEST_ID_CTX.set(rid)
        try:
            response = await call_next(request)
            response.headers[self.header_name] = rid
            return response
        finally:
            REQUEST_ID_CTX.reset(token)
