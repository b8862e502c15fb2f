import os
import pytest
import importlib

# nativenest.core.config builds DATABASE_URL at import time
os.environ.setdefault("POSTGRES_USER", "nativenest")
os.environ.setdefault("POSTGRES_DB", "nativenest_test")
os.environ.setdefault("db_password", "test-password")
os.environ.setdefault("secret_key", "test-secret-key")
os.environ.setdefault("DB_HOST", "localhost")
os.environ.setdefault("DB_PORT", "5432")
os.environ.setdefault("REDIS_URL", "redis://localhost:6379/0")


SERVICE_MODULES = [
    "nativenest.services.booking_service",
    "nativenest.services.event_service",
    "nativenest.services.interest_service",
    "nativenest.services.stall_type_service",
]


class _StubSpan:
    def __init__(
        self,
        *,
        scope: str,
        action: str,
        object_type: str | None = None,
        object_id: int | None = None,
        event_id: int | None = None,
        stall_type_id: int | None = None,
        stall_id: int | None = None,
        meta: dict | None = None,
        **_ignored
    ):
        self.scope = scope
        self.action = action
        self.object_type = object_type
        self.object_id = object_id
        self.event_id = event_id
        self.stall_type_id = stall_type_id
        self.stall_id = stall_id
        self.meta = dict(meta or {})
        self.entered = False
        self.exited = False
        self.exit_args = None

    async def __aenter__(self):
        self.entered = True
        return self

    async def __aexit__(self, exc_type, exc, tb):
        self.exited = True
        self.exit_args = (exc_type, exc, tb)
        return False


@pytest.fixture(autouse=True)
def auditspan_stub(mocker, request):
    if request.node.get_closest_marker("integration"):
        return []

    instances = []

    def factory(*a, **k):
        s = _StubSpan(*a, **k)
        instances.append(s)
        return s

    for mod in SERVICE_MODULES:
        importlib.import_module(mod)
        mocker.patch(f"{mod}.AuditSpan", side_effect=factory)

    return instances
