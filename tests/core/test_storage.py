"""Tests for the raw Session and MemorySessionStorage."""

import pytest

from sessionkit.contracts import is_session
from sessionkit.core.config import SessionSettings
from sessionkit.core.storage import MemorySessionStorage, Session


class TestSession:
    def test_set_get_unset(self) -> None:
        session = Session()
        session.set("user", "ann")
        assert session.get("user") == "ann"
        assert session.has("user")
        session.unset("user")
        assert session.get("user") is None
        assert not session.has("user")

    def test_flash_is_read_once(self) -> None:
        session = Session()
        session.flash("notice", "saved")
        assert session.has("notice")
        assert session.data == {"__flash_notice__": "saved"}
        assert session.get("notice") == "saved"
        assert session.get("notice") is None

    def test_flash_uses_configured_pattern(self) -> None:
        session = Session(settings=SessionSettings(flash_prefix="!", flash_suffix=""))
        session.flash("notice", 1)
        assert session.data == {"!notice": 1}

    def test_unset_missing_key_is_noop(self) -> None:
        Session().unset("nothing")

    def test_is_session(self) -> None:
        assert is_session(Session({"a": 1}, "id-1"))


class TestMemorySessionStorage:
    @pytest.mark.asyncio
    async def test_new_session_has_empty_id(self, memory_storage: MemorySessionStorage) -> None:
        session = await memory_storage.get_session(None)
        assert session.id == ""
        assert session.data == {}

    @pytest.mark.asyncio
    async def test_commit_allocates_id_and_round_trips(self, memory_storage: MemorySessionStorage) -> None:
        session = await memory_storage.get_session()
        session.set("user", "ann")

        header = await memory_storage.commit_session(session)

        assert header
        assert header in memory_storage
        loaded = await memory_storage.get_session(header)
        assert loaded.id == header
        assert loaded.get("user") == "ann"

    @pytest.mark.asyncio
    async def test_sessions_do_not_share_data(self, memory_storage: MemorySessionStorage) -> None:
        session = await memory_storage.get_session()
        session.set("tags", ["a"])
        header = await memory_storage.commit_session(session)

        first = await memory_storage.get_session(header)
        second = await memory_storage.get_session(header)
        first.get("tags").append("b")

        assert second.get("tags") == ["a"]

    @pytest.mark.asyncio
    async def test_unknown_header_yields_new_session(self, memory_storage: MemorySessionStorage) -> None:
        session = await memory_storage.get_session("does-not-exist")
        assert session.id == ""

    @pytest.mark.asyncio
    async def test_destroy_removes_record(self, memory_storage: MemorySessionStorage) -> None:
        session = await memory_storage.get_session()
        header = await memory_storage.commit_session(session)
        loaded = await memory_storage.get_session(header)

        assert await memory_storage.destroy_session(loaded) == ""
        assert header not in memory_storage
        assert len(memory_storage) == 0
