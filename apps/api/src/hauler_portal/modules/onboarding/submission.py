"""
Submission Pipeline

Turns a validated ApplicationDraft into an intake payload, hands it to the
configured intake strategy and reports the outcome as a SubmissionResult.

Strategies:
- DatabaseIntake: the intake endpoint records the application and returns
  its identifiers. An optional notifier is told afterwards; its failure is
  only logged because the stored record is the acknowledgment.
- MailRelayIntake: no database. The notification is the only record, so a
  failed notification fails the submission.

The pipeline calls the strategy exactly once per submit and never retries.
It never raises for transport or notification problems; those come back as
`SubmissionResult(success=False, error=...)`.
"""

import json
import logging
import secrets
import string
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Protocol

import httpx
from pydantic import BaseModel, Field

from hauler_portal.core.config import settings
from hauler_portal.core.email import TEMPLATE_APPLICATION_RECEIVED, send_template_email
from hauler_portal.modules.onboarding.helpers import build_notification_variables
from hauler_portal.modules.onboarding.schemas import ApplicationDraft, DocumentRef, DocumentType

logger = logging.getLogger(__name__)

INTAKE_PATH = "/api/v1/hauler-applications"
GENERIC_SUBMIT_ERROR = "An unexpected error occurred. Please try again."

# Untyped files collected by the legacy steps are recorded under these types
LEGACY_VEHICLE_DOCUMENT_TYPE = DocumentType.VEHICLE_REGISTRATION
LEGACY_PROOF_OF_ACCOUNT_TYPE = DocumentType.BANK_CONFIRMATION


class IntakeError(Exception):
    """The intake endpoint could not be reached or refused the application."""

    def __init__(self, message: str, status_code: int | None = None):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class NotificationError(Exception):
    """The mail relay did not accept the notification."""


# ============================================
# Payload
# ============================================


class ApplicationData(BaseModel):
    """Applicant, contact, address, banking and consent fields."""

    full_name: str
    id_number: str
    entity_type: str
    business_name: str | None = None
    beee_level: str | None = None
    cipc_registration: str | None = None
    mobile_number: str
    email: str
    physical_address: str
    province: str
    bank_name: str
    account_holder_name: str
    account_number: str
    account_type: str
    branch_code: str
    accept_terms: bool
    consent_to_store: bool
    consent_to_contact: bool


class TruckRecord(BaseModel):
    truck_number: int = Field(..., ge=1)
    vehicle_type: str
    load_capacity: str
    horse_registration: str
    trailer1_registration: str | None = None
    trailer2_registration: str | None = None


class DocumentRecord(BaseModel):
    document_type: DocumentType
    file_name: str
    file_size: int
    content_type: str


class IntakePayload(BaseModel):
    """
    What the intake endpoint receives.

    The binary content of each document travels separately in
    `attachments`, in the same order as `documents`.
    """

    application_data: ApplicationData
    trucks: list[TruckRecord]
    documents: list[DocumentRecord]
    attachments: list[DocumentRef] = Field(default_factory=list, exclude=True)


def _blank_to_none(value: str) -> str | None:
    value = value.strip()
    return value or None


def build_payload(draft: ApplicationDraft) -> IntakePayload:
    """Split a draft into the structured record plus its attachments."""
    is_business = draft.entity_type == "business"

    application_data = ApplicationData(
        full_name=draft.full_name.strip(),
        id_number=draft.id_number.strip(),
        entity_type=draft.entity_type,
        business_name=_blank_to_none(draft.business_name) if is_business else None,
        beee_level=_blank_to_none(draft.beee_level) if is_business else None,
        cipc_registration=_blank_to_none(draft.cipc_registration) if is_business else None,
        mobile_number=draft.mobile_number.strip(),
        email=draft.email.strip(),
        physical_address=draft.physical_address.strip(),
        province=draft.province,
        bank_name=draft.bank_name.strip(),
        account_holder_name=draft.account_holder_name.strip(),
        account_number=draft.account_number.strip(),
        account_type=draft.account_type,
        branch_code=draft.branch_code.strip(),
        accept_terms=draft.accept_terms,
        consent_to_store=draft.consent_to_store,
        consent_to_contact=draft.consent_to_contact,
    )

    trucks = [
        TruckRecord(
            truck_number=number,
            vehicle_type=truck.vehicle_type,
            load_capacity=truck.load_capacity,
            horse_registration=truck.horse_registration.strip(),
            trailer1_registration=_blank_to_none(truck.trailer1_registration),
            trailer2_registration=_blank_to_none(truck.trailer2_registration),
        )
        for number, truck in enumerate(draft.trucks, start=1)
    ]

    attachments: list[DocumentRef] = []
    for ref in draft.vehicle_documents:
        document_type = ref.document_type or LEGACY_VEHICLE_DOCUMENT_TYPE
        attachments.append(ref.model_copy(update={"document_type": document_type}))
    if draft.proof_of_bank_account is not None:
        proof = draft.proof_of_bank_account
        document_type = proof.document_type or LEGACY_PROOF_OF_ACCOUNT_TYPE
        attachments.append(proof.model_copy(update={"document_type": document_type}))
    attachments.extend(draft.documents)

    documents = [
        DocumentRecord(
            document_type=ref.document_type,
            file_name=ref.file_name,
            file_size=ref.file_size,
            content_type=ref.content_type,
        )
        for ref in attachments
    ]

    return IntakePayload(
        application_data=application_data,
        trucks=trucks,
        documents=documents,
        attachments=attachments,
    )


# ============================================
# Results
# ============================================


@dataclass(frozen=True)
class IntakeReceipt:
    """Identifiers returned by the intake endpoint."""

    application_id: int | None
    application_number: str


@dataclass(frozen=True)
class SubmissionResult:
    success: bool
    application_id: int | None = None
    application_number: str | None = None
    error: str | None = None

    @classmethod
    def failed(cls, error: str) -> "SubmissionResult":
        return cls(success=False, error=error)


# ============================================
# Collaborators
# ============================================


class IntakeEndpoint(Protocol):
    async def create_application(self, payload: IntakePayload) -> IntakeReceipt: ...


class Notifier(Protocol):
    async def notify(self, template_id: str, variables: dict[str, str]) -> bool: ...


class HttpIntakeEndpoint:
    """
    Posts the payload to the intake API as multipart form data.

    The structured record goes in a `payload` JSON part, the files in
    repeated `files` parts.
    """

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        client: httpx.AsyncClient | None = None,
    ):
        self.base_url = (base_url or settings.intake_base_url).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.intake_timeout_seconds
        self._client = client

    def _multipart(self, payload: IntakePayload) -> tuple[dict, list]:
        data = {"payload": json.dumps(payload.model_dump(mode="json"))}
        files = []
        for ref in payload.attachments:
            if ref.content is None:
                raise IntakeError(f"{ref.file_name} has no content to upload")
            files.append(("files", (ref.file_name, ref.content, ref.content_type)))
        return data, files

    async def _post(self, client: httpx.AsyncClient, payload: IntakePayload) -> httpx.Response:
        data, files = self._multipart(payload)
        return await client.post(f"{self.base_url}{INTAKE_PATH}", data=data, files=files or None)

    async def create_application(self, payload: IntakePayload) -> IntakeReceipt:
        try:
            if self._client is not None:
                resp = await self._post(self._client, payload)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    resp = await self._post(client, payload)
        except httpx.HTTPError as e:
            logger.error(f"Intake request failed: {e}")
            raise IntakeError("Could not reach the application service. Please try again.") from e

        if resp.status_code not in (200, 201):
            message = "Failed to create application"
            try:
                detail = resp.json().get("detail")
                if isinstance(detail, dict):
                    message = detail.get("message", message)
            except ValueError:
                pass
            logger.warning(f"Intake rejected application: status={resp.status_code}")
            raise IntakeError(message, status_code=resp.status_code)

        try:
            body = resp.json()
            return IntakeReceipt(
                application_id=body["application_id"],
                application_number=body["application_number"],
            )
        except (ValueError, KeyError, TypeError) as e:
            raise IntakeError("The application service returned an invalid response") from e


class EmailNotifier:
    """Relays a variables bag through the Resend mail relay."""

    def __init__(self, to_email: str | None = None):
        self.to_email = to_email

    async def notify(self, template_id: str, variables: dict[str, str]) -> bool:
        return await send_template_email(template_id, variables, self.to_email)


# ============================================
# Strategies
# ============================================


class IntakeStrategy(Protocol):
    async def submit(self, payload: IntakePayload, draft: ApplicationDraft) -> IntakeReceipt: ...


class DatabaseIntake:
    """Record through the intake endpoint, then notify (best effort)."""

    def __init__(self, endpoint: IntakeEndpoint, notifier: Notifier | None = None):
        self.endpoint = endpoint
        self.notifier = notifier

    async def submit(self, payload: IntakePayload, draft: ApplicationDraft) -> IntakeReceipt:
        receipt = await self.endpoint.create_application(payload)
        logger.info(f"Intake recorded application {receipt.application_number}")

        if self.notifier is not None:
            variables = build_notification_variables(draft, receipt.application_number)
            try:
                sent = await self.notifier.notify(TEMPLATE_APPLICATION_RECEIVED, variables)
                if not sent:
                    logger.error(
                        f"Notification not sent for application {receipt.application_number}"
                    )
            except Exception as e:
                logger.error(
                    f"Exception sending notification for application "
                    f"{receipt.application_number}: {e}"
                )

        return receipt


def generate_reference_number(now: datetime | None = None) -> str:
    """Local reference number, e.g. HAU-123456-7QX2."""
    now = now or datetime.now(UTC)
    millis = str(int(now.timestamp() * 1000))[-6:]
    alphabet = string.ascii_uppercase + string.digits
    suffix = "".join(secrets.choice(alphabet) for _ in range(4))
    return f"HAU-{millis}-{suffix}"


class MailRelayIntake:
    """The notification is the only record of the application."""

    def __init__(self, notifier: Notifier):
        self.notifier = notifier

    async def submit(self, payload: IntakePayload, draft: ApplicationDraft) -> IntakeReceipt:
        application_number = generate_reference_number()
        variables = build_notification_variables(draft, application_number)

        if not await self.notifier.notify(TEMPLATE_APPLICATION_RECEIVED, variables):
            raise NotificationError(
                "Form submission failed. Please check your information and try again."
            )

        logger.info(f"Application {application_number} relayed by email")
        return IntakeReceipt(application_id=None, application_number=application_number)


# ============================================
# Pipeline
# ============================================


class SubmissionPipeline:
    """Single entry point the wizard submits through."""

    def __init__(self, strategy: IntakeStrategy):
        self.strategy = strategy

    async def submit(self, draft: ApplicationDraft) -> SubmissionResult:
        try:
            payload = build_payload(draft)
            receipt = await self.strategy.submit(payload, draft)
        except (IntakeError, NotificationError) as e:
            logger.warning(f"Submission failed: {e}")
            return SubmissionResult.failed(str(e))
        except Exception as e:
            logger.error(f"Unexpected submission error: {e}")
            return SubmissionResult.failed(GENERIC_SUBMIT_ERROR)

        return SubmissionResult(
            success=True,
            application_id=receipt.application_id,
            application_number=receipt.application_number,
        )
