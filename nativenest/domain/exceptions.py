from nativenest.core.utils.serialization import normalize_ctx


class AppError(Exception):
    def __init__(self, message: str = "", *, ctx: dict | None = None) -> None:
        super().__init__(message or self.__class__.__name__)
        self.ctx = normalize_ctx(ctx or {})


class NotFound(AppError):
    pass
class Unauthorized(AppError):
    pass
class Forbidden(AppError):
    pass
class Conflict(AppError):
    pass
class InvalidInput(AppError):
    pass
class Unprocessable(AppError):
    pass


class CapacityExceeded(InvalidInput):
    """Stall-type allocation would overflow the event's declared stall_count."""

    def __init__(self, message: str = "", *, stall_count: int, allocated: int, requested: int) -> None:
        remaining = max(0, stall_count - allocated)
        super().__init__(
            message or f"Cannot allocate {requested} stalls. Max available: {remaining}",
            ctx={"stall_count": stall_count, "allocated": allocated, "requested": requested, "remaining": remaining},
        )
        self.remaining = remaining


class NoAvailableStall(Conflict):
    pass
