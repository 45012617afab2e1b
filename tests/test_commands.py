"""
Tests for the command channel
"""
import pytest
from pydantic import BaseModel, ValidationError

from offline_engine.commands import (
    CacheScore,
    CacheTimerEvent,
    GetOfflineData,
    SkipWaiting,
    parse_command,
)
from offline_engine.queue.records import MutationKind


class TestParsing:

    def test_each_variant(self):
        assert isinstance(parse_command({"type": "SKIP_WAITING"}), SkipWaiting)
        assert isinstance(parse_command({"type": "GET_OFFLINE_DATA"}), GetOfflineData)
        score = parse_command({"type": "CACHE_SCORE", "payload": {"points": 3}})
        assert isinstance(score, CacheScore)
        assert score.payload == {"points": 3}
        assert isinstance(
            parse_command({"type": "CACHE_TIMER_EVENT", "payload": {"action": "start"}}),
            CacheTimerEvent,
        )

    def test_unknown_type_rejected(self):
        with pytest.raises(ValidationError):
            parse_command({"type": "CLEAR_EVERYTHING"})

    def test_missing_payload_rejected(self):
        with pytest.raises(ValidationError):
            parse_command({"type": "CACHE_SCORE"})


class TestHandling:

    def test_cache_score_enqueues(self, engine):
        reply = engine.handle_message({"type": "CACHE_SCORE", "payload": {"points": 42}})

        assert reply is None
        records = engine.queue.list_unsynced(MutationKind.SCORE)
        assert [r.payload for r in records] == [{"points": 42}]

    def test_cache_timer_event_enqueues(self, engine):
        engine.handle_message(CacheTimerEvent(payload={"action": "stop", "elapsed": 31.2}))

        records = engine.queue.list_unsynced(MutationKind.TIMER_EVENT)
        assert [r.payload["action"] for r in records] == ["stop"]

    def test_get_offline_data_reply(self, engine):
        engine.handle_message({"type": "CACHE_SCORE", "payload": {"points": 1}})
        engine.handle_message({"type": "CACHE_TIMER_EVENT", "payload": {"action": "start"}})

        reply = engine.handle_message({"type": "GET_OFFLINE_DATA"})

        assert len(reply["scores"]) == 1
        assert len(reply["timerEvents"]) == 1
        assert reply["scores"][0]["synced"] is False

    def test_unknown_raw_message_raises(self, engine):
        with pytest.raises(ValidationError):
            engine.handle_message({"type": "NOPE"})

    def test_command_outside_union_is_rejected(self, engine):
        class Reboot(BaseModel):
            type: str = "REBOOT"

        with pytest.raises(AssertionError):
            engine.handle_message(Reboot())
