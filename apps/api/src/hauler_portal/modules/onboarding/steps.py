"""
Step Schema Registry

Static step definitions for the onboarding wizard and the rule set each step
enforces. `StepRegistry.validate` is pure and only ever looks at the slice of
the draft that belongs to the requested step.

Two registries ship:
- LEGACY_STEPS: five steps, vehicle documents and proof of bank account are
  collected on the vehicle and banking steps.
- TYPED_UPLOAD_STEPS: six steps, all files go through a dedicated document
  step where each file is tagged with a DocumentType.
"""

from collections.abc import Callable, Sequence
from dataclasses import dataclass

from hauler_portal.modules.onboarding import validators
from hauler_portal.modules.onboarding.schemas import (
    ApplicationDraft,
    DocumentRef,
    DocumentType,
    ErrorKey,
    ErrorMap,
)

# ============================================
# Selector options
# ============================================

PROVINCES = [
    "Eastern Cape",
    "Free State",
    "Gauteng",
    "KwaZulu-Natal",
    "Limpopo",
    "Mpumalanga",
    "Northern Cape",
    "North West",
    "Western Cape",
]

BEEE_LEVELS = [
    "Level 1 (135% B-BBEE recognition)",
    "Level 2 (125% B-BBEE recognition)",
    "Level 3 (110% B-BBEE recognition)",
    "Level 4 (100% B-BBEE recognition)",
    "Level 5 (80% B-BBEE recognition)",
    "Level 6 (60% B-BBEE recognition)",
    "Level 7 (50% B-BBEE recognition)",
    "Level 8 (10% B-BBEE recognition)",
    "Non-compliant (0% B-BBEE recognition)",
]

VEHICLE_TYPES = [
    "Bakkie/Light Delivery Vehicle",
    "Panel Van",
    "Truck (Rigid)",
    "Truck (Articulated)",
    "Flatbed Truck",
    "Refrigerated Truck",
    "Tipper Truck",
    "Other",
]

LOAD_CAPACITIES = ["1 Ton"] + [f"{tons} Tons" for tons in range(2, 16)]

BANKS = [
    "ABSA Bank",
    "Standard Bank",
    "First National Bank (FNB)",
    "Nedbank",
    "Capitec Bank",
    "African Bank",
    "Investec Bank",
    "Discovery Bank",
    "TymeBank",
    "Bank Zero",
    "Bidvest Bank",
    "Sasfin Bank",
    "Other",
]

ACCOUNT_TYPES = [
    "Current Account",
    "Savings Account",
    "Business Current Account",
    "Business Savings Account",
]

# Error keys used by the pre-attach check on the document step
DOCUMENT_TYPE_KEY = ErrorKey("document_type")
DOCUMENT_UPLOAD_KEY = ErrorKey("document_upload")


StepValidator = Callable[[ApplicationDraft], ErrorMap]


@dataclass(frozen=True)
class StepDefinition:
    """One wizard step. A terminal step has no forward validation."""

    id: int
    title: str
    description: str
    validate: StepValidator
    terminal: bool = False


class UnknownStepError(LookupError):
    """Raised when a step id is outside the registry."""

    def __init__(self, step_id: int, total_steps: int):
        self.step_id = step_id
        super().__init__(f"Step {step_id} does not exist (valid: 1-{total_steps})")


# ============================================
# Rule sets
# ============================================


def _require(errors: ErrorMap, draft: ApplicationDraft, field: str, message: str) -> None:
    if validators.is_blank(getattr(draft, field)):
        errors[ErrorKey(field)] = message


def _check(errors: ErrorMap, key: ErrorKey, reason: str | None) -> None:
    if reason is not None:
        errors[key] = reason


def _reselect_message(ref: DocumentRef) -> str:
    return f"{ref.file_name} must be selected again after restoring a saved draft"


def validate_basic_information(draft: ApplicationDraft) -> ErrorMap:
    errors: ErrorMap = {}

    _require(errors, draft, "full_name", "Full name is required")
    _require(errors, draft, "id_number", "ID/Passport number is required")
    if draft.entity_type not in ("individual", "business"):
        errors[ErrorKey("entity_type")] = "Entity type must be selected"

    if draft.entity_type == "business":
        _require(errors, draft, "business_name", "Business name is required")
        _require(errors, draft, "beee_level", "BEEE Level is required for business entities")
        _require(
            errors,
            draft,
            "cipc_registration",
            "CIPC Registration Number is required for business entities",
        )

    _check(errors, ErrorKey("mobile_number"), validators.validate_mobile_number(draft.mobile_number))
    _check(errors, ErrorKey("email"), validators.validate_email(draft.email))
    _require(errors, draft, "physical_address", "Physical address is required")
    _require(errors, draft, "province", "Province is required")

    return errors


def validate_trucks(draft: ApplicationDraft) -> ErrorMap:
    errors: ErrorMap = {}

    if not draft.trucks:
        errors[ErrorKey("trucks")] = "At least one truck is required"
        return errors

    for index, truck in enumerate(draft.trucks):
        number = index + 1
        if validators.is_blank(truck.vehicle_type):
            errors[ErrorKey("vehicle_type", "truck", index)] = (
                f"Vehicle type is required for truck {number}"
            )
        _check(
            errors,
            ErrorKey("load_capacity", "truck", index),
            validators.validate_load_capacity(truck.load_capacity, number),
        )
        if validators.is_blank(truck.horse_registration):
            errors[ErrorKey("horse_registration", "truck", index)] = (
                f"Horse registration is required for truck {number}"
            )

    return errors


def validate_vehicle_step_with_documents(draft: ApplicationDraft) -> ErrorMap:
    """Trucks plus the flat vehicle document list."""
    errors = validate_trucks(draft)

    if not draft.vehicle_documents:
        errors[ErrorKey("vehicle_documents")] = "At least one vehicle document is required"
        return errors

    for index, ref in enumerate(draft.vehicle_documents):
        key = ErrorKey("file", "vehicle_document", index)
        reason = (
            validators.validate_content_type(ref.content_type, ref.file_name)
            or validators.validate_file_size(ref.file_size, f"Document {index + 1}")
        )
        if reason is None and not ref.has_content:
            reason = _reselect_message(ref)
        _check(errors, key, reason)

    return errors


def validate_banking_details(draft: ApplicationDraft) -> ErrorMap:
    errors: ErrorMap = {}

    _require(errors, draft, "bank_name", "Bank name is required")
    _check(
        errors,
        ErrorKey("account_holder_name"),
        validators.validate_account_holder_name(draft.account_holder_name),
    )
    _check(
        errors,
        ErrorKey("account_number"),
        validators.validate_account_number(draft.account_number),
    )
    _require(errors, draft, "account_type", "Account type is required")
    _check(errors, ErrorKey("branch_code"), validators.validate_branch_code(draft.branch_code))

    return errors


def validate_banking_step_with_proof(draft: ApplicationDraft) -> ErrorMap:
    """Banking fields plus the proof-of-account file."""
    errors = validate_banking_details(draft)
    proof = draft.proof_of_bank_account
    key = ErrorKey("proof_of_bank_account")

    if proof is None:
        errors[key] = "Proof of bank account is required"
    else:
        reason = (
            validators.validate_content_type(proof.content_type, proof.file_name)
            or validators.validate_file_size(proof.file_size)
        )
        if reason is None and not proof.has_content:
            reason = _reselect_message(proof)
        _check(errors, key, reason)

    return errors


def validate_documents(draft: ApplicationDraft) -> ErrorMap:
    errors: ErrorMap = {}

    if not draft.documents:
        errors[ErrorKey("documents")] = "Please upload at least one document"
        return errors

    for index, ref in enumerate(draft.documents):
        if ref.document_type is None:
            errors[ErrorKey("document_type", "document", index)] = (
                f"Document type is required for document {index + 1}"
            )
        reason = (
            validators.validate_content_type(ref.content_type, ref.file_name)
            or validators.validate_file_size(ref.file_size, f"Document {index + 1}")
        )
        if reason is None and not ref.has_content:
            reason = _reselect_message(ref)
        _check(errors, ErrorKey("file", "document", index), reason)

    return errors


def validate_consent(draft: ApplicationDraft) -> ErrorMap:
    errors: ErrorMap = {}

    if draft.accept_terms is not True:
        errors[ErrorKey("accept_terms")] = "You must accept the terms of use to continue"
    if draft.consent_to_store is not True:
        errors[ErrorKey("consent_to_store")] = "You must consent to data storage to continue"
    if draft.consent_to_contact is not True:
        errors[ErrorKey("consent_to_contact")] = "You must consent to be contacted to continue"

    return errors


def validate_nothing(_draft: ApplicationDraft) -> ErrorMap:
    return {}


# ============================================
# Registry
# ============================================


class StepRegistry:
    """Ordered, fixed set of wizard steps. The last step is terminal."""

    def __init__(self, steps: Sequence[StepDefinition], typed_uploads: bool = False):
        if not steps or not steps[-1].terminal:
            raise ValueError("A step registry must end with a terminal step")
        for position, step in enumerate(steps, start=1):
            if step.id != position:
                raise ValueError(f"Step ids must be 1..n in order, got {step.id} at {position}")
        self._steps = tuple(steps)
        self.typed_uploads = typed_uploads

    def __iter__(self):
        return iter(self._steps)

    def __len__(self) -> int:
        return len(self._steps)

    @property
    def total_steps(self) -> int:
        return len(self._steps)

    @property
    def last_data_step(self) -> int:
        """The step `submit()` is called from."""
        return self.total_steps - 1

    @property
    def terminal_step(self) -> int:
        return self.total_steps

    def get(self, step_id: int) -> StepDefinition:
        if not 1 <= step_id <= self.total_steps:
            raise UnknownStepError(step_id, self.total_steps)
        return self._steps[step_id - 1]

    def validate(self, step_id: int, draft: ApplicationDraft) -> ErrorMap:
        """Complete error map for one step. Empty means the step passes."""
        return self.get(step_id).validate(draft)

    def validate_all(self, draft: ApplicationDraft) -> dict[int, ErrorMap]:
        return {step.id: step.validate(draft) for step in self._steps}

    def check_attachment(
        self,
        document_type: DocumentType | str | None,
        file: DocumentRef,
    ) -> ErrorMap:
        """
        Pre-attach check for the typed document step.

        A document type must be chosen first, then the file must be an
        accepted format and no larger than 10 MiB.
        """
        errors: ErrorMap = {}

        if document_type in (None, ""):
            errors[DOCUMENT_TYPE_KEY] = "Please select a document type first"
            return errors

        try:
            DocumentType(document_type)
        except ValueError:
            errors[DOCUMENT_TYPE_KEY] = f"Unknown document type: {document_type}"
            return errors

        reason = validators.validate_content_type(file.content_type, file.file_name)
        if reason is None and file.file_size > validators.MAX_FILE_SIZE_BYTES:
            reason = f"File {file.file_name} is too large. Maximum file size is 10MB."
        _check(errors, DOCUMENT_UPLOAD_KEY, reason)

        return errors


LEGACY_STEPS = StepRegistry(
    [
        StepDefinition(
            1, "Basic Information", "Personal and contact details", validate_basic_information
        ),
        StepDefinition(
            2,
            "Vehicle Information",
            "Truck details and documentation",
            validate_vehicle_step_with_documents,
        ),
        StepDefinition(
            3,
            "Banking Details",
            "Payment and account information",
            validate_banking_step_with_proof,
        ),
        StepDefinition(4, "Terms & Consent", "Agreement and permissions", validate_consent),
        StepDefinition(
            5, "Confirmation", "Review and submit", validate_nothing, terminal=True
        ),
    ]
)

TYPED_UPLOAD_STEPS = StepRegistry(
    [
        StepDefinition(
            1, "Basic Information", "Personal and contact details", validate_basic_information
        ),
        StepDefinition(2, "Vehicle Information", "Truck details", validate_trucks),
        StepDefinition(
            3, "Banking Details", "Payment and account information", validate_banking_details
        ),
        StepDefinition(4, "Documents", "Supporting documents", validate_documents),
        StepDefinition(5, "Terms & Consent", "Agreement and permissions", validate_consent),
        StepDefinition(
            6, "Confirmation", "Review and submit", validate_nothing, terminal=True
        ),
    ],
    typed_uploads=True,
)
