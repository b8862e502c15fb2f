import json
import logging
import time
from datetime import timezone, datetime
from typing import Any, Mapping
from redis.exceptions import RedisError
from sqlalchemy.exc import IntegrityError
from nativenest.core.config import AUDIT_STREAM
from nativenest.core.ctx import get_redis, actor_snapshot

logger = logging.getLogger("nativenest.audit")


class AuditStatus:
    SUCCESS = "SUCCESS"
    FAIL = "FAIL"


async def audit_emit(
    *,
    scope: str,
    action: str,
    status: str,
    object_type: str | None = None,
    object_id: int | None = None,
    event_id: int | None = None,
    stall_type_id: int | None = None,
    stall_id: int | None = None,
    reason: str | None = None,
    meta: Mapping[str, Any] | None = None
) -> str | None:
    r = get_redis()
    if not r:
        return None

    payload = {
        **actor_snapshot(),
        "scope": scope,
        "action": action,
        "status": status,
        "object_type": object_type,
        "object_id": object_id,
        "event_id": event_id,
        "stall_type_id": stall_type_id,
        "stall_id": stall_id,
        "reason": reason,
        "meta": dict(meta or {}),
    }
    try:
        return await r.xadd(AUDIT_STREAM, {"json": json.dumps(payload, default=str)})
    except (RedisError, OSError):
        logger.warning("Audit emit failed scope=%s action=%s", scope, action, exc_info=True)
        return None


def _reason_from_exception(exception: BaseException | None) -> str | None:
    if exception is None:
        return None
    if isinstance(exception, IntegrityError):
        return "Integrity error"
    return str(exception) or exception.__class__.__name__


class AuditSpan:
    """Times a mutating operation and emits one SUCCESS/FAIL audit record on exit.

    Attributes may be filled in while the span is open (``span.object_id = ...``),
    the final values are what gets emitted. Exceptions are never suppressed.
    """

    def __init__(self, *, scope: str, action: str,
                 object_type: str | None = None, object_id: int | None = None,
                 event_id: int | None = None, stall_type_id: int | None = None,
                 stall_id: int | None = None, meta: Mapping[str, Any] | None = None):
        self.scope = scope
        self.action = action
        self.object_type = object_type
        self.object_id = object_id
        self.event_id = event_id
        self.stall_type_id = stall_type_id
        self.stall_id = stall_id
        self.meta = dict(meta or {})
        self._t0 = 0.0

    async def __aenter__(self):
        self._t0 = time.perf_counter()
        started = datetime.now(timezone.utc)
        self.meta.setdefault("occurred_at", started.isoformat(timespec="milliseconds").replace("+00:00", "Z"))
        return self

    async def __aexit__(self, exc_type, exc, tb):
        self.meta["duration_ms"] = int((time.perf_counter() - self._t0) * 1000)
        status = AuditStatus.FAIL if exc else AuditStatus.SUCCESS
        await audit_emit(
            scope=self.scope, action=self.action, status=status,
            object_type=self.object_type, object_id=self.object_id,
            event_id=self.event_id, stall_type_id=self.stall_type_id, stall_id=self.stall_id,
            reason=_reason_from_exception(exc), meta=self.meta
        )
        return False
