"""Unit tests for the offline completion outbox."""

from unittest.mock import AsyncMock, MagicMock

import pytest
import redis.asyncio as aioredis

from mindscape.activities.catalog import get_template
from mindscape.activities.completion import CompletionIntent
from mindscape.errors import CollaboratorUnavailableError
from mindscape.sync.outbox import CompletionOutbox, dead_letter_key, progress_key, stream_key


@pytest.fixture
def intent(user_id, now):
    return CompletionIntent(
        user_id=user_id,
        activity_id="daily_queued",
        activity_type="cloud_catcher",
        reward=get_template("cloud_catcher").base_reward,
        completed_at=now,
        position=(250.0, 300.0, 0.0),
    )


@pytest.fixture
def redis(intent):
    mock = AsyncMock()
    mock.xadd.return_value = "1700000000000-0"
    mock.xrange.return_value = [("1700000000000-0", {"intent": intent.model_dump_json()})]
    mock.hget.return_value = None
    mock.xlen.return_value = 0
    return mock


class TestEnqueue:
    async def test_appends_to_user_stream(self, redis, intent, user_id):
        outbox = CompletionOutbox(redis, maxlen=500)

        entry_id = await outbox.enqueue(intent)

        assert entry_id == "1700000000000-0"
        redis.xadd.assert_awaited_once_with(
            stream_key(user_id),
            {"intent": intent.model_dump_json()},
            maxlen=500,
            approximate=True,
        )

    async def test_redis_down_is_unavailable(self, redis, intent):
        redis.xadd.side_effect = aioredis.ConnectionError("connection refused")
        with pytest.raises(CollaboratorUnavailableError) as exc_info:
            await CompletionOutbox(redis).enqueue(intent)
        assert exc_info.value.table == "outbox"

    async def test_users_with_pending(self, redis, user_id):
        async def keys():
            yield stream_key(user_id)
            yield stream_key("other-user")

        redis.scan_iter = MagicMock(return_value=keys())
        assert await CompletionOutbox(redis).users_with_pending() == [user_id, "other-user"]


class TestFlush:
    """Replay in order, delete only after every write went through."""

    async def test_flush_applies_all_writes(self, redis, store, user_id):
        outbox = CompletionOutbox(redis)

        flushed, remaining = await outbox.flush(store, user_id)

        assert (flushed, remaining) == (1, 0)
        assert [table for _, table in store.write_log] == ["activity_completions", "city_items", "stats"]
        assert store.rows("city_items")[0]["position_x"] == 250.0
        redis.xdel.assert_awaited_once_with(stream_key(user_id), "1700000000000-0")
        redis.hdel.assert_awaited_once_with(progress_key(user_id), "1700000000000-0")

    async def test_unreachable_backend_pauses_and_keeps_entry(self, redis, store, user_id):
        redis.xlen.return_value = 1
        store.offline = True

        flushed, remaining = await CompletionOutbox(redis).flush(store, user_id)

        assert (flushed, remaining) == (0, 1)
        redis.hset.assert_awaited_once_with(progress_key(user_id), "1700000000000-0", 0)
        redis.xdel.assert_not_awaited()

    async def test_resumes_at_recorded_step(self, redis, store, user_id):
        redis.hget.return_value = "2"

        flushed, _ = await CompletionOutbox(redis).flush(store, user_id)

        assert flushed == 1
        assert store.write_log == [("upsert", "stats")]
        assert store.rows("activity_completions") == []

    async def test_rejected_entry_goes_to_dead_letter(self, redis, store, user_id):
        store.fail_writes("city_items")

        flushed, _ = await CompletionOutbox(redis).flush(store, user_id)

        assert flushed == 0
        dead_key = redis.xadd.call_args.args[0]
        assert dead_key == dead_letter_key(user_id)
        assert "city_items" in redis.xadd.call_args.args[1]["error"]
        redis.xdel.assert_awaited_once()

    async def test_completion_committed_before_disconnect_is_not_rejected(self, redis, store, intent, user_id, now):
        await store.insert(
            "activity_completions",
            {"user_id": user_id, "activity_id": "daily_queued", "completed_at": now, "intent_id": intent.intent_id},
        )

        flushed, _ = await CompletionOutbox(redis).flush(store, user_id)

        assert flushed == 1
        assert len(store.rows("activity_completions")) == 1
        assert len(store.rows("city_items")) == 1
        assert store.rows("stats")[0]["total_breaks"] == 1
        redis.xadd.assert_not_awaited()

    async def test_empty_stream(self, redis, store, user_id):
        redis.xrange.return_value = []
        assert await CompletionOutbox(redis).flush(store, user_id) == (0, 0)
        assert store.write_log == []
