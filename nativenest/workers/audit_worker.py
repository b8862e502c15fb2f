import os
import json
import asyncio
import signal
import socket
import logging
import redis.asyncio as redis
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker
from sqlalchemy import text, bindparam, Text
from sqlalchemy.dialects.postgresql import JSONB, INET, ARRAY
from sqlalchemy.exc import SQLAlchemyError
from nativenest.core.config import DATABASE_URL, AUDIT_STREAM, AUDIT_GROUP, AUDIT_BATCH, AUDIT_BLOCK_MS
from nativenest.core.redis import create_redis


logger = logging.getLogger("nativenest.audit.worker")

RETRY_EVERY_S = 30
MIN_IDLE_MS = 60000

INSERT_AUDIT = text("""
    INSERT INTO audit.audit_logs
    (request_id, scope, action, actor_user_id, actor_roles, actor_ip, route,
     object_type, object_id, event_id, stall_type_id, stall_id, status, reason, meta)
    VALUES
    (:request_id, :scope, :action, :actor_user_id, :actor_roles, :actor_ip, :route,
     :object_type, :object_id, :event_id, :stall_type_id, :stall_id, :status, :reason, :meta)
""").bindparams(
    bindparam("actor_roles", type_=ARRAY(Text())),
    bindparam("actor_ip", type_=INET),
    bindparam("meta", type_=JSONB),
)


class InvalidPayload(ValueError):
    pass


def decode_payload(raw_json: str | None) -> dict:
    try:
        payload = json.loads(raw_json) if raw_json else {}
    except json.JSONDecodeError as e:
        raise InvalidPayload(f"not JSON: {e}") from e
    if not isinstance(payload, dict):
        raise InvalidPayload("payload is not a JSON object")
    if not payload.get("scope") or not payload.get("action"):
        raise InvalidPayload("missing required fields: scope/action")
    return payload


def _params_from_payload(payload: dict) -> dict:
    status = (payload.get("status") or "SUCCESS").upper()
    return {
        "request_id": payload.get("request_id"),
        "scope": payload["scope"],
        "action": payload["action"],
        "actor_user_id": payload.get("actor_user_id"),
        "actor_roles": list(payload.get("actor_roles") or []),
        "actor_ip": payload.get("actor_ip"),
        "route": payload.get("route"),
        "object_type": payload.get("object_type"),
        "object_id": payload.get("object_id"),
        "event_id": payload.get("event_id"),
        "stall_type_id": payload.get("stall_type_id"),
        "stall_id": payload.get("stall_id"),
        "status": "SUCCESS" if status == "SUCCESS" else "FAIL",
        "reason": payload.get("reason"),
        "meta": dict(payload.get("meta") or {}),
    }


async def _ensure_group(r: redis.Redis) -> None:
    try:
        await r.xgroup_create(
            name=AUDIT_STREAM,
            groupname=AUDIT_GROUP,
            id="$",
            mkstream=True,
        )
        logger.info("XGROUP created stream=%s group=%s", AUDIT_STREAM, AUDIT_GROUP)
    except redis.ResponseError as e:
        if "BUSYGROUP" in str(e):
            logger.info("XGROUP already exists stream=%s group=%s", AUDIT_STREAM, AUDIT_GROUP)
        else:
            raise


async def _ack(r: redis.Redis, msg_id: str) -> None:
    try:
        await r.xack(AUDIT_STREAM, AUDIT_GROUP, msg_id)
    except redis.RedisError:
        logger.exception("XACK failed id=%s", msg_id)


async def store_batch(r: redis.Redis, session, entries, *, source: str = "XREADGROUP") -> int:
    """
    Writes one batch of stream entries to audit.audit_logs, returns the number stored.
    - stored rows are acked
    - malformed payloads are acked and dropped
    - DB failures stay in the pending list for a later XAUTOCLAIM
    """
    stored = 0
    async with session() as db:
        async with db.begin():
            for msg_id, fields in entries:
                try:
                    params = _params_from_payload(decode_payload(fields.get("json")))
                except InvalidPayload as e:
                    logger.warning("Invalid payload (%s); dropping id=%s err=%s", source, msg_id, e)
                    await _ack(r, msg_id)
                    continue

                try:
                    # savepoint per row so one failed insert does not poison the batch
                    async with db.begin_nested():
                        await db.execute(INSERT_AUDIT, params)
                except SQLAlchemyError:
                    logger.exception("DB insert failed (%s); keeping id=%s in PEL", source, msg_id)
                    continue

                await _ack(r, msg_id)
                stored += 1
    return stored


async def run() -> None:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )
    r = await create_redis()
    await _ensure_group(r)

    engine = create_async_engine(DATABASE_URL, pool_pre_ping=True)
    session = async_sessionmaker(bind=engine, expire_on_commit=False)

    stop = asyncio.Event()

    def _graceful(*_):
        stop.set()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, _graceful)
        except NotImplementedError:
            pass

    consumer = f"{socket.gethostname()}-{os.getpid()}"
    logger.info(
        "Audit worker started | stream=%s group=%s consumer=%s batch=%d block_ms=%d",
        AUDIT_STREAM, AUDIT_GROUP, consumer, AUDIT_BATCH, AUDIT_BLOCK_MS,
    )

    last_retry = loop.time()

    try:
        while not stop.is_set():
            resp = await r.xreadgroup(
                groupname=AUDIT_GROUP,
                consumername=consumer,
                streams={AUDIT_STREAM: ">"},
                count=AUDIT_BATCH,
                block=AUDIT_BLOCK_MS,
            )
            if resp:
                await store_batch(r, session, resp[0][1])

            now = loop.time()
            if now - last_retry > RETRY_EVERY_S:
                last_retry = now
                try:
                    _, msgs, _ = await r.xautoclaim(
                        name=AUDIT_STREAM,
                        groupname=AUDIT_GROUP,
                        consumername=consumer,
                        min_idle_time=MIN_IDLE_MS,
                        start_id="0",
                        count=100,
                    )
                    if msgs:
                        logger.info("XAUTOCLAIM: retrying %d pending messages", len(msgs))
                        await store_batch(r, session, msgs, source="XAUTOCLAIM")
                except (redis.RedisError, SQLAlchemyError):
                    logger.exception("XAUTOCLAIM failed")
    finally:
        logger.info("Shutting down audit worker...")
        try:
            await r.aclose()
        except redis.RedisError:
            logger.exception("Redis close failed")
        await engine.dispose()
        logger.info("Audit worker stopped.")


if __name__ == "__main__":
    asyncio.run(run())
