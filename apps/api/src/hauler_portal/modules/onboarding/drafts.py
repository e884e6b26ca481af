"""
Draft Persistence

Best-effort save and restore of the wizard state through a single-slot
draft store.

Lifecycle:
1. `load_candidate()` before any interaction. A snapshot younger than the
   TTL (24 h) is offered; an older one is deleted without being offered.
2. `resolve(restore=...)` applies or discards the candidate. Until then
   nothing is saved.
3. Every later change schedules a save after 1 s of quiet. A change inside
   the window cancels and restarts the timer, so at most one save is
   pending and it writes the latest state at fire time.
4. A submitted application (one with an application number) deletes the
   snapshot and is never saved.

The store holds one slot. Two tabs using the same store overwrite each
other's drafts.

Attachment content is never written: DocumentRef.content is excluded from
serialization, so a restored draft keeps file names, types and sizes but the
files must be selected again.

Storage and serialization errors are logged and swallowed.
"""

import asyncio
import logging
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from typing import Protocol

from pydantic import ValidationError
from redis.asyncio import Redis

from hauler_portal.core.config import settings
from hauler_portal.core.redis import get_redis
from hauler_portal.modules.onboarding.schemas import DraftSnapshot, WizardState
from hauler_portal.modules.onboarding.wizard import OnboardingWizard

logger = logging.getLogger(__name__)

DRAFT_KEY = "hauler_onboarding:draft"

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(UTC)


# ============================================
# Stores
# ============================================


class DraftStore(Protocol):
    """Get, set and delete one named JSON blob."""

    async def get(self) -> str | None: ...

    async def set(self, blob: str) -> None: ...

    async def delete(self) -> None: ...


class RedisDraftStore:
    """Draft slot kept under one Redis key."""

    def __init__(self, redis: Redis, key: str = DRAFT_KEY, ttl_seconds: int | None = None):
        self.redis = redis
        self.key = key
        self.ttl_seconds = ttl_seconds

    async def get(self) -> str | None:
        value = await self.redis.get(self.key)
        if isinstance(value, bytes):
            return value.decode("utf-8")
        return value

    async def set(self, blob: str) -> None:
        await self.redis.set(self.key, blob, ex=self.ttl_seconds)

    async def delete(self) -> None:
        await self.redis.delete(self.key)


class MemoryDraftStore:
    """In-process draft slot, used when Redis is unavailable and in tests."""

    def __init__(self, blob: str | None = None):
        self.blob = blob

    async def get(self) -> str | None:
        return self.blob

    async def set(self, blob: str) -> None:
        self.blob = blob

    async def delete(self) -> None:
        self.blob = None


async def open_draft_store() -> DraftStore:
    """Redis-backed slot when Redis is up, otherwise an in-process one."""
    redis = await get_redis()
    if redis is None:
        logger.warning("Redis unavailable, onboarding drafts kept in memory")
        return MemoryDraftStore()
    return RedisDraftStore(redis, ttl_seconds=settings.draft_ttl_hours * 3600)


# ============================================
# Persistence
# ============================================


class DraftPersistence:
    """Observes a wizard and keeps its draft snapshot up to date."""

    def __init__(
        self,
        store: DraftStore,
        ttl: timedelta | None = None,
        debounce_seconds: float | None = None,
        clock: Clock = utc_now,
    ):
        self.store = store
        self.ttl = ttl if ttl is not None else timedelta(hours=settings.draft_ttl_hours)
        self.debounce_seconds = (
            debounce_seconds if debounce_seconds is not None else settings.draft_debounce_seconds
        )
        self.clock = clock

        self._candidate: DraftSnapshot | None = None
        self._resolved = False
        self._latest: WizardState | None = None
        self._pending_save: asyncio.Task | None = None
        self._pending_clear: asyncio.Task | None = None
        self._unsubscribe: Callable[[], None] | None = None

    @property
    def candidate(self) -> DraftSnapshot | None:
        return self._candidate

    @property
    def is_resolved(self) -> bool:
        return self._resolved

    @property
    def has_pending_save(self) -> bool:
        return self._pending_save is not None and not self._pending_save.done()

    # ----------------------------------------
    # Load / restore decision
    # ----------------------------------------

    async def load_candidate(self) -> DraftSnapshot | None:
        """
        Look for a saved draft worth offering.

        Returns the snapshot if it is within the TTL. Expired or unreadable
        snapshots are deleted and None is returned.
        """
        self._candidate = None

        try:
            blob = await self.store.get()
        except Exception as e:
            logger.error(f"Failed to read onboarding draft: {e}")
            self._resolved = True
            return None

        if blob is None:
            self._resolved = True
            return None

        try:
            snapshot = DraftSnapshot.model_validate_json(blob)
        except (ValidationError, ValueError) as e:
            logger.warning(f"Discarding unreadable onboarding draft: {e}")
            await self._delete()
            self._resolved = True
            return None

        timestamp = snapshot.timestamp
        if timestamp.tzinfo is None:
            timestamp = timestamp.replace(tzinfo=UTC)
        age = self.clock() - timestamp
        if age > self.ttl:
            logger.info(f"Discarding expired onboarding draft (age {age})")
            await self._delete()
            self._resolved = True
            return None

        self._candidate = snapshot
        self._resolved = False
        return snapshot

    async def resolve(self, restore: bool, wizard: OnboardingWizard | None = None) -> None:
        """
        Settle the restore-or-discard decision.

        Restoring applies the candidate to `wizard`. Discarding deletes the
        saved snapshot ("start fresh"). Either way, saving starts afterwards.
        """
        candidate = self._candidate
        self._candidate = None

        if restore and candidate is not None:
            if wizard is None:
                raise ValueError("A wizard is required to restore a draft")
            wizard.restore(candidate)
            logger.info(f"Restored onboarding draft at step {candidate.current_step}")
        elif candidate is not None:
            await self._delete()

        self._resolved = True

    # ----------------------------------------
    # Observation
    # ----------------------------------------

    def attach(self, wizard: OnboardingWizard) -> None:
        """Start saving every change of `wizard`."""
        self.detach()
        self._unsubscribe = wizard.subscribe(self._on_change)

    def detach(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def _on_change(self, state: WizardState) -> None:
        if not self._resolved:
            return

        if state.data.application_number is not None:
            self._cancel_pending_save()
            self._pending_clear = self._spawn(self.clear_after_submission())
            return

        self.schedule_save(state)

    def _spawn(self, coro) -> asyncio.Task | None:
        try:
            return asyncio.get_running_loop().create_task(coro)
        except RuntimeError:
            coro.close()
            logger.warning("No running event loop, onboarding draft not persisted")
            return None

    def _cancel_pending_save(self) -> None:
        if self._pending_save is not None and not self._pending_save.done():
            self._pending_save.cancel()
        self._pending_save = None

    def schedule_save(self, state: WizardState) -> None:
        """Debounced save. Restarts the quiet window if a save is pending."""
        self._latest = state
        self._cancel_pending_save()
        self._pending_save = self._spawn(self._save_after_quiet())

    async def _save_after_quiet(self) -> None:
        await asyncio.sleep(self.debounce_seconds)
        await self._write_latest()

    async def _write_latest(self) -> None:
        state = self._latest
        if state is None:
            return

        try:
            snapshot = DraftSnapshot(
                data=state.data,
                current_step=state.current_step,
                timestamp=self.clock(),
            )
            await self.store.set(snapshot.model_dump_json())
        except Exception as e:
            logger.error(f"Failed to save onboarding draft: {e}")

    async def flush(self) -> None:
        """Write a pending save now and wait for any pending clear."""
        if self.has_pending_save:
            self._cancel_pending_save()
            await self._write_latest()
        if self._pending_clear is not None:
            await self._pending_clear
            self._pending_clear = None

    # ----------------------------------------
    # Deletion
    # ----------------------------------------

    async def _delete(self) -> None:
        try:
            await self.store.delete()
        except Exception as e:
            logger.error(f"Failed to delete onboarding draft: {e}")

    async def discard(self) -> None:
        """Drop the saved draft and any pending save ("start fresh")."""
        self._cancel_pending_save()
        self._latest = None
        await self._delete()

    async def clear_after_submission(self) -> None:
        """Delete the snapshot once the application has been accepted."""
        self._cancel_pending_save()
        self._latest = None
        await self._delete()
        logger.info("Cleared onboarding draft after submission")
