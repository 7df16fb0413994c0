"""
Tests for the local token store and the profile store.
"""

from datetime import datetime

import pytest
from cryptography.fernet import Fernet

from app.core.exceptions import StoreUnavailable
from app.schemas.slack import ConnectionRecord, LocalSlackTokens, token_fingerprint
from app.stores.local_token_store import LocalTokenStore


class TestLocalTokenStore:
    @pytest.mark.asyncio
    async def test_empty_store(self, local_store):
        tokens = await local_store.get_slack_tokens()
        assert tokens.connected is False
        assert tokens.access_token is None

    @pytest.mark.asyncio
    async def test_set_get_clear(self, local_store):
        await local_store.set_slack_tokens(LocalSlackTokens(access_token="xoxb-tok", team_id="T1", user_id="u1"))

        tokens = await local_store.get_slack_tokens()
        assert tokens.connected is True
        assert tokens.user_id == "u1"

        assert await local_store.clear_slack_tokens() is True
        assert await local_store.clear_slack_tokens() is True
        assert (await local_store.get_slack_tokens()).connected is False

    @pytest.mark.asyncio
    async def test_file_is_encrypted(self, local_store):
        await local_store.set_slack_tokens(LocalSlackTokens(access_token="xoxb-secret", team_id="T1", user_id="u1"))

        with open(local_store.path, "rb") as fh:
            raw = fh.read()
        assert b"xoxb-secret" not in raw

    @pytest.mark.asyncio
    async def test_plaintext_when_no_key_uses_ipc_field_names(self, tmp_path):
        store = LocalTokenStore(path=str(tmp_path / "plain.json"), encryption_key="")
        await store.set_slack_tokens(LocalSlackTokens(access_token="xoxb-tok", team_id="T1", user_id="u1"))

        with open(store.path) as fh:
            raw = fh.read()
        assert '"accessToken": "xoxb-tok"' in raw
        assert '"teamId": "T1"' in raw
        assert store.encrypted is False

    @pytest.mark.asyncio
    async def test_wrong_key_is_store_unavailable(self, tmp_path):
        path = str(tmp_path / "tokens.json")
        await LocalTokenStore(path=path, encryption_key=Fernet.generate_key()).set_slack_tokens(
            LocalSlackTokens(access_token="xoxb-tok", team_id="T1")
        )

        with pytest.raises(StoreUnavailable):
            await LocalTokenStore(path=path, encryption_key=Fernet.generate_key()).get_slack_tokens()


class TestProfileStore:
    @pytest.mark.asyncio
    async def test_missing_record(self, profile_store):
        assert await profile_store.get_slack_connection("nobody") is None

    @pytest.mark.asyncio
    async def test_upsert_keeps_connected_at_for_same_link(self, profile_store):
        record = ConnectionRecord(connected=True, team_id="T1", team_name="Acme", access_token="xoxb-tok")

        first = await profile_store.upsert_slack_connection("u1", record)
        second = await profile_store.upsert_slack_connection("u1", record)

        assert first.connected_at is not None
        assert second.connected_at == first.connected_at
        assert second.owner_user_id == "u1"

    @pytest.mark.asyncio
    async def test_upsert_with_new_token_resets_connected_at(self, profile_store):
        old = datetime(2020, 1, 1)
        await profile_store.upsert_slack_connection(
            "u1", ConnectionRecord(connected=True, team_id="T1", access_token="xoxb-old", connected_at=old)
        )

        updated = await profile_store.upsert_slack_connection(
            "u1", ConnectionRecord(connected=True, team_id="T1", access_token="xoxb-new")
        )

        assert updated.access_token == "xoxb-new"
        assert updated.connected_at > old

    @pytest.mark.asyncio
    async def test_mark_disconnected_records_fingerprints(self, profile_store):
        await profile_store.upsert_slack_connection(
            "u1", ConnectionRecord(connected=True, team_id="T1", team_name="Acme", access_token="xoxb-tok")
        )

        assert await profile_store.mark_disconnected("u1", "xoxb-device") is True
        record = await profile_store.get_slack_connection("u1")

        assert record.connected is False
        assert record.access_token is None
        assert record.team_name == "Acme"
        assert record.is_revoked("xoxb-tok")
        assert record.is_revoked("xoxb-device")
        assert not record.is_revoked("xoxb-other")
        assert sorted(record.revoked_token_fingerprints) == sorted(
            [token_fingerprint("xoxb-tok"), token_fingerprint("xoxb-device")]
        )

    @pytest.mark.asyncio
    async def test_mark_disconnected_without_record_creates_one(self, profile_store):
        assert await profile_store.mark_disconnected("nobody", "xoxb-device") is False

        record = await profile_store.get_slack_connection("nobody")
        assert record.connected is False
        assert record.disconnected_at is not None
        assert record.is_revoked("xoxb-device")

    @pytest.mark.asyncio
    async def test_repeated_disconnect_keeps_fingerprints(self, profile_store):
        await profile_store.upsert_slack_connection(
            "u1", ConnectionRecord(connected=True, team_id="T1", access_token="xoxb-tok")
        )
        await profile_store.mark_disconnected("u1")
        first = await profile_store.get_slack_connection("u1")

        await profile_store.mark_disconnected("u1")
        second = await profile_store.get_slack_connection("u1")

        assert second.is_revoked("xoxb-tok")
        assert second.disconnected_at == first.disconnected_at

    @pytest.mark.asyncio
    async def test_reconnect_clears_fingerprints(self, profile_store):
        await profile_store.upsert_slack_connection(
            "u1", ConnectionRecord(connected=True, team_id="T1", access_token="xoxb-tok")
        )
        await profile_store.mark_disconnected("u1")

        record = await profile_store.upsert_slack_connection(
            "u1", ConnectionRecord(connected=True, team_id="T1", access_token="xoxb-tok")
        )

        assert record.revoked_token_fingerprints == []
