"""create audit_logs table with partitioning

Revision ID: d4b07c3e91a8
Revises: 7a2e9f14c6b3
Create Date: 2026-10-14 16:02:47.931550
"""
from datetime import date
from typing import Sequence, Union
from alembic import op


# revision identifiers, used by Alembic.
revision: str = "d4b07c3e91a8"
down_revision: Union[str, Sequence[str], None] = "7a2e9f14c6b3"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

FIRST_MONTH = date(2026, 10, 1)
MONTHS_AHEAD = 6


def _month_bounds(start: date, n: int) -> list[tuple[date, date]]:
    bounds = []
    cur = start
    for _ in range(n):
        nxt = date(cur.year + (cur.month == 12), cur.month % 12 + 1, 1)
        bounds.append((cur, nxt))
        cur = nxt
    return bounds


def upgrade() -> None:
    op.execute("CREATE SCHEMA IF NOT EXISTS audit")

    op.execute(
        """
        CREATE TABLE IF NOT EXISTS audit.audit_logs(
            id BIGINT GENERATED ALWAYS AS IDENTITY,
            ts_utc timestamptz NOT NULL DEFAULT now(),
            request_id text,
            scope text NOT NULL,
            action text NOT NULL,
            actor_user_id bigint,
            actor_roles text[] NOT NULL DEFAULT '{}',
            actor_ip inet,
            route text,
            object_type text,
            object_id bigint,
            event_id bigint,
            stall_type_id bigint,
            stall_id bigint,
            status text NOT NULL,
            reason text,
            meta jsonb NOT NULL DEFAULT '{}'::jsonb,
            CONSTRAINT chk_audit_status CHECK (status IN ('SUCCESS','FAIL')),
            PRIMARY KEY (ts_utc, id)
        ) PARTITION BY RANGE (ts_utc)
        """
    )

    op.execute("CREATE INDEX IF NOT EXISTS ix_audit_logs_ts ON audit.audit_logs (ts_utc DESC)")
    op.execute("CREATE INDEX IF NOT EXISTS ix_audit_logs_actor_ts ON audit.audit_logs (actor_user_id, ts_utc DESC)")
    op.execute("CREATE INDEX IF NOT EXISTS ix_audit_logs_action_ts ON audit.audit_logs (action, ts_utc DESC)")
    op.execute("CREATE INDEX IF NOT EXISTS ix_audit_logs_obj ON audit.audit_logs (object_type, object_id)")
    op.execute("CREATE INDEX IF NOT EXISTS ix_audit_logs_event ON audit.audit_logs (event_id)")
    op.execute("CREATE INDEX IF NOT EXISTS ix_audit_logs_stall_type ON audit.audit_logs (stall_type_id)")
    op.execute("CREATE INDEX IF NOT EXISTS ix_audit_logs_stall ON audit.audit_logs (stall_id)")
    op.execute("CREATE INDEX IF NOT EXISTS ix_audit_logs_meta_gin ON audit.audit_logs USING gin (meta jsonb_path_ops)")
    op.execute("CREATE INDEX IF NOT EXISTS ix_audit_logs_id ON audit.audit_logs (id)")

    for lo, hi in _month_bounds(FIRST_MONTH, MONTHS_AHEAD):
        op.execute(
            f"""
            CREATE TABLE IF NOT EXISTS audit.audit_logs_{lo:%Y_%m}
              PARTITION OF audit.audit_logs
              FOR VALUES FROM (TIMESTAMPTZ '{lo:%Y-%m-%d} 00:00:00+00') TO (TIMESTAMPTZ '{hi:%Y-%m-%d} 00:00:00+00')
            """
        )
    op.execute(
        """
        CREATE TABLE IF NOT EXISTS audit.audit_logs_default
          PARTITION OF audit.audit_logs DEFAULT
        """
    )


def downgrade() -> None:
    op.execute("DROP SCHEMA IF EXISTS audit CASCADE")
