"""
Onboarding Module

The multi-step hauler onboarding form, independent of any web framework:
1. Field validators and per-step rule sets
2. Wizard state machine (navigation, editing, submission)
3. Draft persistence with a 24-hour restore window
4. Submission pipeline over a database-backed or mail-relay intake

Typical wiring:
    pipeline = SubmissionPipeline(DatabaseIntake(HttpIntakeEndpoint(), EmailNotifier()))
    wizard = OnboardingWizard(TYPED_UPLOAD_STEPS, pipeline)
    drafts = DraftPersistence(await open_draft_store())
    if await drafts.load_candidate():
        await drafts.resolve(restore=True, wizard=wizard)
    drafts.attach(wizard)
"""

from .drafts import DraftPersistence, MemoryDraftStore, RedisDraftStore, open_draft_store
from .schemas import ApplicationDraft, DocumentRef, DocumentType, ErrorKey, Truck, WizardState
from .steps import LEGACY_STEPS, TYPED_UPLOAD_STEPS, StepRegistry
from .submission import (
    DatabaseIntake,
    EmailNotifier,
    HttpIntakeEndpoint,
    MailRelayIntake,
    SubmissionPipeline,
    SubmissionResult,
)
from .wizard import OnboardingWizard

__all__ = [
    "ApplicationDraft",
    "DatabaseIntake",
    "DocumentRef",
    "DocumentType",
    "DraftPersistence",
    "EmailNotifier",
    "ErrorKey",
    "HttpIntakeEndpoint",
    "LEGACY_STEPS",
    "MailRelayIntake",
    "MemoryDraftStore",
    "OnboardingWizard",
    "RedisDraftStore",
    "StepRegistry",
    "SubmissionPipeline",
    "SubmissionResult",
    "TYPED_UPLOAD_STEPS",
    "Truck",
    "WizardState",
    "open_draft_store",
]
