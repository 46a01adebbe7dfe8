"""Offline outbox for completion intents.

Pending intents live in a per-user Redis stream, oldest first:

    outbox:completions:{user_id}   XADD ... MAXLEN ~ N   field "intent" = JSON

``flush`` replays entries in order through the same ``CompletionWriter`` the
controller uses and deletes an entry only after all of its writes went
through. Delivery is at-least-once. Partial progress of an entry is kept in
``outbox:progress:{user_id}`` so a replay resumes at the failed write.
Entries rejected by the backend for any other reason than being unreachable
are moved to ``outbox:dead:{user_id}``.
"""

from __future__ import annotations

import redis.asyncio as aioredis
import structlog

from mindscape.activities.completion import CompletionIntent, CompletionWriter
from mindscape.errors import CollaboratorUnavailableError, CollaboratorWriteError
from mindscape.store.base import TableStore

logger = structlog.get_logger()

STREAM_PREFIX = "outbox:completions:"
DEFAULT_MAXLEN = 10_000
DEFAULT_BATCH = 100


def stream_key(user_id: str) -> str:
    return f"{STREAM_PREFIX}{user_id}"


def progress_key(user_id: str) -> str:
    return f"outbox:progress:{user_id}"


def dead_letter_key(user_id: str) -> str:
    return f"outbox:dead:{user_id}"


class CompletionOutbox:
    def __init__(
        self,
        redis: aioredis.Redis,
        writer: CompletionWriter | None = None,
        maxlen: int = DEFAULT_MAXLEN,
        batch: int = DEFAULT_BATCH,
    ) -> None:
        self.redis = redis
        self.writer = writer or CompletionWriter()
        self.maxlen = maxlen
        self.batch = batch

    async def enqueue(self, intent: CompletionIntent) -> str:
        """Queue ``intent``. Raises CollaboratorUnavailableError if Redis is down."""
        try:
            entry_id = await self.redis.xadd(
                stream_key(intent.user_id),
                {"intent": intent.model_dump_json()},
                maxlen=self.maxlen,
                approximate=True,
            )
        except aioredis.RedisError as exc:
            raise CollaboratorUnavailableError("outbox", f"Outbox unavailable: {exc}") from exc
        logger.info(
            "completion_queued",
            user_id=intent.user_id,
            intent_id=intent.intent_id,
            steps_done=intent.steps_done,
            entry_id=entry_id,
        )
        return entry_id

    async def pending(self, user_id: str) -> int:
        return await self.redis.xlen(stream_key(user_id))

    async def users_with_pending(self) -> list[str]:
        users = []
        async for key in self.redis.scan_iter(match=f"{STREAM_PREFIX}*"):
            users.append(key.removeprefix(STREAM_PREFIX))
        return users

    async def flush(self, store: TableStore, user_id: str) -> tuple[int, int]:
        """Replay queued intents for ``user_id``.

        Stops at the first entry whose backend is unreachable. Returns
        ``(flushed, remaining)``.
        """
        key = stream_key(user_id)
        flushed = 0
        entries = await self.redis.xrange(key, count=self.batch)

        for entry_id, fields in entries:
            intent = CompletionIntent.model_validate_json(fields["intent"])
            done = await self.redis.hget(progress_key(user_id), entry_id)
            if done is not None:
                intent.steps_done = max(intent.steps_done, int(done))

            try:
                await self.writer.apply(store, intent)
            except CollaboratorUnavailableError:
                await self.redis.hset(progress_key(user_id), entry_id, intent.steps_done)
                logger.info("outbox_flush_paused", user_id=user_id, entry_id=entry_id, table=intent.next_table)
                break
            except CollaboratorWriteError as exc:
                await self.redis.xadd(
                    dead_letter_key(user_id),
                    {"intent": intent.model_dump_json(), "error": str(exc)},
                    maxlen=self.maxlen,
                    approximate=True,
                )
                logger.error("outbox_entry_rejected", user_id=user_id, entry_id=entry_id, table=exc.table)
            else:
                flushed += 1

            await self.redis.xdel(key, entry_id)
            await self.redis.hdel(progress_key(user_id), entry_id)

        remaining = await self.pending(user_id)
        if flushed:
            logger.info("outbox_flushed", user_id=user_id, flushed=flushed, remaining=remaining)
        return flushed, remaining
