"""
Unit tests for draft persistence.

These tests cover:
- Restore offer within 24 hours, silent discard after
- Restore and discard decisions
- Debounced, coalesced saves after the decision
- Attachment content never persisted
- Storage failures logged and swallowed
- Snapshot cleared after submission
"""

import asyncio
import json
from datetime import timedelta
from unittest.mock import AsyncMock, patch

import pytest

from hauler_portal.modules.onboarding.drafts import (
    DraftPersistence,
    MemoryDraftStore,
    RedisDraftStore,
    open_draft_store,
)
from hauler_portal.modules.onboarding.schemas import DraftSnapshot, ErrorKey
from hauler_portal.modules.onboarding.submission import DatabaseIntake, SubmissionPipeline
from hauler_portal.modules.onboarding.wizard import OnboardingWizard

QUIET = 0.01


class CountingStore(MemoryDraftStore):
    def __init__(self, blob=None):
        super().__init__(blob)
        self.writes = []

    async def set(self, blob):
        self.writes.append(blob)
        await super().set(blob)


class FailingStore:
    async def get(self):
        raise ConnectionError("store offline")

    async def set(self, blob):
        raise ConnectionError("store offline")

    async def delete(self):
        raise ConnectionError("store offline")


def snapshot_blob(draft, step, timestamp) -> str:
    return DraftSnapshot(data=draft, current_step=step, timestamp=timestamp).model_dump_json()


async def settle():
    await asyncio.sleep(QUIET * 5)


class TestLoadCandidate:
    """Tests for the restore offer."""

    @pytest.mark.asyncio
    async def test_snapshot_23_hours_old_is_offered(self, valid_draft, clock):
        store = MemoryDraftStore(snapshot_blob(valid_draft, 3, clock.now - timedelta(hours=23)))
        drafts = DraftPersistence(store, clock=clock)

        candidate = await drafts.load_candidate()

        assert candidate is not None
        assert candidate.current_step == 3
        assert drafts.is_resolved is False
        assert store.blob is not None

    @pytest.mark.asyncio
    async def test_snapshot_25_hours_old_is_discarded(self, valid_draft, clock):
        store = MemoryDraftStore(snapshot_blob(valid_draft, 3, clock.now - timedelta(hours=25)))
        drafts = DraftPersistence(store, clock=clock)

        assert await drafts.load_candidate() is None
        assert drafts.candidate is None
        assert drafts.is_resolved is True
        assert store.blob is None

    @pytest.mark.asyncio
    async def test_no_snapshot(self, clock):
        drafts = DraftPersistence(MemoryDraftStore(), clock=clock)
        assert await drafts.load_candidate() is None
        assert drafts.is_resolved is True

    @pytest.mark.asyncio
    async def test_unreadable_snapshot_is_deleted(self, clock):
        store = MemoryDraftStore("{not json")
        drafts = DraftPersistence(store, clock=clock)
        assert await drafts.load_candidate() is None
        assert store.blob is None

    @pytest.mark.asyncio
    async def test_store_failure_means_no_draft(self, clock):
        drafts = DraftPersistence(FailingStore(), clock=clock)
        assert await drafts.load_candidate() is None
        assert drafts.is_resolved is True


class TestResolve:
    """Tests for the restore-or-discard decision."""

    @pytest.mark.asyncio
    async def test_restore_applies_snapshot(self, valid_draft, clock):
        store = MemoryDraftStore(snapshot_blob(valid_draft, 4, clock.now - timedelta(hours=1)))
        drafts = DraftPersistence(store, clock=clock)
        wizard = OnboardingWizard()

        await drafts.load_candidate()
        await drafts.resolve(restore=True, wizard=wizard)

        assert wizard.current_step == 4
        assert wizard.data.full_name == valid_draft.full_name
        assert drafts.is_resolved is True

    @pytest.mark.asyncio
    async def test_discard_deletes_snapshot(self, valid_draft, clock):
        store = MemoryDraftStore(snapshot_blob(valid_draft, 4, clock.now - timedelta(hours=1)))
        drafts = DraftPersistence(store, clock=clock)

        await drafts.load_candidate()
        await drafts.resolve(restore=False)

        assert store.blob is None
        assert drafts.is_resolved is True

    @pytest.mark.asyncio
    async def test_restored_attachments_have_no_content(self, valid_draft, clock):
        store = MemoryDraftStore(snapshot_blob(valid_draft, 4, clock.now))
        drafts = DraftPersistence(store, clock=clock)
        wizard = OnboardingWizard()

        await drafts.load_candidate()
        await drafts.resolve(restore=True, wizard=wizard)

        restored = wizard.data.documents[0]
        assert restored.file_name == "id.pdf"
        assert restored.has_content is False
        assert wizard.next() is False
        assert "selected again" in wizard.errors[ErrorKey("file", "document", 0)]


class TestSaving:
    """Tests for debounced saves."""

    @pytest.mark.asyncio
    async def test_nothing_saved_before_decision(self, valid_draft, clock):
        store = CountingStore(snapshot_blob(valid_draft, 2, clock.now))
        drafts = DraftPersistence(store, debounce_seconds=QUIET, clock=clock)
        wizard = OnboardingWizard()
        drafts.attach(wizard)

        await drafts.load_candidate()
        wizard.update_data(full_name="Typed before deciding")
        await settle()

        assert store.writes == []

    @pytest.mark.asyncio
    async def test_rapid_changes_coalesce_into_one_write(self, clock):
        store = CountingStore()
        drafts = DraftPersistence(store, debounce_seconds=QUIET, clock=clock)
        wizard = OnboardingWizard()
        await drafts.load_candidate()
        drafts.attach(wizard)

        for name in ["T", "Th", "Tha", "Thabo"]:
            wizard.update_data(full_name=name)
        assert drafts.has_pending_save is True
        await settle()

        assert len(store.writes) == 1
        saved = DraftSnapshot.model_validate_json(store.writes[0])
        assert saved.data.full_name == "Thabo"
        assert saved.timestamp == clock.now

    @pytest.mark.asyncio
    async def test_attachment_content_not_serialized(self, valid_draft, clock):
        store = CountingStore()
        drafts = DraftPersistence(store, debounce_seconds=QUIET, clock=clock)
        wizard = OnboardingWizard()
        await drafts.load_candidate()
        drafts.attach(wizard)

        wizard.update_data(documents=valid_draft.documents)
        await drafts.flush()

        document = json.loads(store.blob)["data"]["documents"][0]
        assert "content" not in document
        assert document["file_name"] == "id.pdf"
        assert document["document_type"] == "id_document"

    @pytest.mark.asyncio
    async def test_write_failure_is_swallowed(self, clock):
        drafts = DraftPersistence(FailingStore(), debounce_seconds=QUIET, clock=clock)
        wizard = OnboardingWizard()
        await drafts.load_candidate()
        drafts.attach(wizard)

        wizard.update_data(full_name="Thabo")
        await settle()

        assert wizard.data.full_name == "Thabo"

    @pytest.mark.asyncio
    async def test_detach_stops_saving(self, clock):
        store = CountingStore()
        drafts = DraftPersistence(store, debounce_seconds=QUIET, clock=clock)
        wizard = OnboardingWizard()
        await drafts.load_candidate()
        drafts.attach(wizard)
        drafts.detach()

        wizard.update_data(full_name="Thabo")
        await settle()

        assert store.writes == []


class TestClearing:
    """Tests for discard and clear after submission."""

    @pytest.mark.asyncio
    async def test_submission_clears_snapshot(self, valid_draft, clock, mock_endpoint):
        store = CountingStore()
        drafts = DraftPersistence(store, debounce_seconds=QUIET, clock=clock)
        wizard = OnboardingWizard(pipeline=SubmissionPipeline(DatabaseIntake(mock_endpoint)))
        await drafts.load_candidate()
        drafts.attach(wizard)

        wizard.restore(DraftSnapshot(data=valid_draft, current_step=5, timestamp=clock.now))
        await drafts.flush()
        assert store.blob is not None

        result = await wizard.submit()
        await drafts.flush()
        await settle()

        assert result.success is True
        assert store.blob is None

    @pytest.mark.asyncio
    async def test_discard_cancels_pending_save(self, clock):
        store = CountingStore()
        drafts = DraftPersistence(store, debounce_seconds=QUIET, clock=clock)
        wizard = OnboardingWizard()
        await drafts.load_candidate()
        drafts.attach(wizard)

        wizard.update_data(full_name="Thabo")
        await drafts.discard()
        await settle()

        assert store.writes == []
        assert store.blob is None


class TestStores:
    """Tests for the draft store backends."""

    @pytest.mark.asyncio
    async def test_redis_store_decodes_bytes(self):
        redis = AsyncMock()
        redis.get = AsyncMock(return_value=b'{"a": 1}')
        store = RedisDraftStore(redis, key="draft", ttl_seconds=60)

        assert await store.get() == '{"a": 1}'
        await store.set("blob")
        redis.set.assert_called_once_with("draft", "blob", ex=60)
        await store.delete()
        redis.delete.assert_called_once_with("draft")

    @pytest.mark.asyncio
    async def test_open_draft_store_falls_back_to_memory(self):
        with patch(
            "hauler_portal.modules.onboarding.drafts.get_redis",
            AsyncMock(return_value=None),
        ):
            store = await open_draft_store()
        assert isinstance(store, MemoryDraftStore)

    @pytest.mark.asyncio
    async def test_open_draft_store_uses_redis(self):
        with patch(
            "hauler_portal.modules.onboarding.drafts.get_redis",
            AsyncMock(return_value=AsyncMock()),
        ):
            store = await open_draft_store()
        assert isinstance(store, RedisDraftStore)
