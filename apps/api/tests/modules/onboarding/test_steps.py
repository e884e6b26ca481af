"""
Unit tests for the step schema registry.

These tests cover:
- Identity step required fields and business-only fields
- Per-truck error keys
- Legacy and typed-upload document rules
- Banking and consent rules
- Pre-attach checks for typed uploads
"""

import pytest

from hauler_portal.modules.onboarding.schemas import (
    ApplicationDraft,
    DocumentType,
    ErrorKey,
    Truck,
)
from hauler_portal.modules.onboarding.steps import (
    DOCUMENT_TYPE_KEY,
    DOCUMENT_UPLOAD_KEY,
    LEGACY_STEPS,
    TYPED_UPLOAD_STEPS,
    StepDefinition,
    StepRegistry,
    UnknownStepError,
    validate_nothing,
)

IDENTITY_FIELDS = [
    "full_name",
    "id_number",
    "mobile_number",
    "email",
    "physical_address",
    "province",
]


class TestRegistryShape:
    """Tests for registry structure."""

    def test_typed_registry_has_six_steps(self):
        assert TYPED_UPLOAD_STEPS.total_steps == 6
        assert TYPED_UPLOAD_STEPS.last_data_step == 5
        assert TYPED_UPLOAD_STEPS.get(6).terminal is True
        assert TYPED_UPLOAD_STEPS.typed_uploads is True

    def test_legacy_registry_has_five_steps(self):
        assert LEGACY_STEPS.total_steps == 5
        assert LEGACY_STEPS.last_data_step == 4
        assert LEGACY_STEPS.typed_uploads is False

    def test_unknown_step_raises(self):
        with pytest.raises(UnknownStepError):
            TYPED_UPLOAD_STEPS.get(7)
        with pytest.raises(UnknownStepError):
            TYPED_UPLOAD_STEPS.validate(0, ApplicationDraft())

    def test_registry_must_end_with_terminal_step(self):
        with pytest.raises(ValueError):
            StepRegistry([StepDefinition(1, "Only", "", validate_nothing)])

    def test_terminal_step_never_fails(self):
        assert TYPED_UPLOAD_STEPS.validate(6, ApplicationDraft()) == {}


class TestIdentityStep:
    """Tests for the basic information step."""

    def test_valid_individual_passes(self, valid_draft):
        assert TYPED_UPLOAD_STEPS.validate(1, valid_draft) == {}

    @pytest.mark.parametrize("field", IDENTITY_FIELDS)
    def test_removing_one_field_reports_exactly_that_field(self, valid_draft, field):
        draft = valid_draft.model_copy(update={field: ""})
        errors = TYPED_UPLOAD_STEPS.validate(1, draft)
        assert set(errors) == {ErrorKey(field)}

    def test_missing_entity_type(self, valid_draft):
        draft = valid_draft.model_copy(update={"entity_type": ""})
        assert set(TYPED_UPLOAD_STEPS.validate(1, draft)) == {ErrorKey("entity_type")}

    def test_business_requires_extra_fields(self, valid_draft):
        draft = valid_draft.model_copy(update={"entity_type": "business"})
        errors = TYPED_UPLOAD_STEPS.validate(1, draft)
        assert set(errors) == {
            ErrorKey("business_name"),
            ErrorKey("beee_level"),
            ErrorKey("cipc_registration"),
        }

    def test_complete_business_passes(self, business_draft):
        assert TYPED_UPLOAD_STEPS.validate(1, business_draft) == {}

    def test_invalid_phone_reported(self, valid_draft):
        draft = valid_draft.model_copy(update={"mobile_number": "0921234567"})
        errors = TYPED_UPLOAD_STEPS.validate(1, draft)
        assert ErrorKey("mobile_number") in errors

    def test_step_never_reports_other_steps(self):
        errors = TYPED_UPLOAD_STEPS.validate(1, ApplicationDraft())
        assert all(key.owner not in ("trucks", "bank_name", "accept_terms") for key in errors)


class TestVehicleStep:
    """Tests for truck rules."""

    def test_blank_truck_reports_per_truck_keys(self):
        errors = TYPED_UPLOAD_STEPS.validate(2, ApplicationDraft())
        assert set(errors) == {
            ErrorKey("vehicle_type", "truck", 0),
            ErrorKey("load_capacity", "truck", 0),
            ErrorKey("horse_registration", "truck", 0),
        }
        assert str(ErrorKey("vehicle_type", "truck", 0)) == "truck-0-vehicle_type"

    def test_no_trucks(self, valid_draft):
        draft = valid_draft.model_copy(update={"trucks": []})
        assert set(TYPED_UPLOAD_STEPS.validate(2, draft)) == {ErrorKey("trucks")}

    def test_second_truck_errors_use_its_position(self, valid_truck):
        draft = ApplicationDraft(
            trucks=[valid_truck, valid_truck.model_copy(update={"load_capacity": "16 Tons"})]
        )
        errors = TYPED_UPLOAD_STEPS.validate(2, draft)
        assert errors == {
            ErrorKey("load_capacity", "truck", 1): "Truck 2 capacity must be between 1 and 15 tons"
        }

    def test_trailers_are_optional(self, valid_truck):
        assert TYPED_UPLOAD_STEPS.validate(2, ApplicationDraft(trucks=[valid_truck])) == {}

    def test_legacy_step_requires_vehicle_documents(self, valid_draft):
        draft = valid_draft.model_copy(update={"vehicle_documents": []})
        assert set(LEGACY_STEPS.validate(2, draft)) == {ErrorKey("vehicle_documents")}

    def test_legacy_oversized_file_keyed_by_position(self, valid_draft, make_document):
        big = make_document(file_name="huge.pdf", file_size=11 * 1024 * 1024)
        draft = valid_draft.model_copy(update={"vehicle_documents": [make_document(), big]})
        errors = LEGACY_STEPS.validate(2, draft)
        assert errors == {
            ErrorKey("file", "vehicle_document", 1): "Document 2 size must be less than 10MB"
        }

    def test_legacy_unsupported_format_rejected(self, valid_draft, make_document):
        word = make_document(file_name="truck.docx", content_type="application/msword")
        draft = valid_draft.model_copy(update={"vehicle_documents": [word]})
        errors = LEGACY_STEPS.validate(2, draft)
        assert errors[ErrorKey("file", "vehicle_document", 0)].startswith(
            "File truck.docx is not a supported format"
        )


class TestBankingStep:
    """Tests for banking rules."""

    def test_valid_banking(self, valid_draft):
        assert TYPED_UPLOAD_STEPS.validate(3, valid_draft) == {}

    def test_invalid_formats(self, valid_draft):
        draft = valid_draft.model_copy(
            update={"account_number": "1234567", "branch_code": "12345", "bank_name": ""}
        )
        errors = TYPED_UPLOAD_STEPS.validate(3, draft)
        assert set(errors) == {
            ErrorKey("account_number"),
            ErrorKey("branch_code"),
            ErrorKey("bank_name"),
        }

    def test_legacy_requires_proof_of_account(self, valid_draft):
        draft = valid_draft.model_copy(update={"proof_of_bank_account": None})
        assert LEGACY_STEPS.validate(3, draft) == {
            ErrorKey("proof_of_bank_account"): "Proof of bank account is required"
        }

    def test_legacy_proof_must_be_supported_format(self, valid_draft, make_document):
        proof = make_document(None, "statement.bin", content_type="application/octet-stream")
        draft = valid_draft.model_copy(update={"proof_of_bank_account": proof})
        errors = LEGACY_STEPS.validate(3, draft)
        assert errors[ErrorKey("proof_of_bank_account")].startswith(
            "File statement.bin is not a supported format"
        )

    def test_typed_registry_does_not_ask_for_proof(self, valid_draft):
        draft = valid_draft.model_copy(update={"proof_of_bank_account": None})
        assert TYPED_UPLOAD_STEPS.validate(3, draft) == {}


class TestDocumentStep:
    """Tests for the typed document step."""

    def test_requires_one_document(self, valid_draft):
        draft = valid_draft.model_copy(update={"documents": []})
        assert TYPED_UPLOAD_STEPS.validate(4, draft) == {
            ErrorKey("documents"): "Please upload at least one document"
        }

    def test_any_type_satisfies_minimum(self, valid_draft, make_document):
        other = make_document(DocumentType.OTHER, "misc.png", content_type="image/png")
        draft = valid_draft.model_copy(update={"documents": [other]})
        assert TYPED_UPLOAD_STEPS.validate(4, draft) == {}

    def test_restored_document_must_be_reselected(self, valid_draft, make_document):
        restored = make_document(DocumentType.ID_DOCUMENT, "id.pdf", content=None, file_size=2048)
        draft = valid_draft.model_copy(update={"documents": [restored]})
        errors = TYPED_UPLOAD_STEPS.validate(4, draft)
        assert "selected again" in errors[ErrorKey("file", "document", 0)]


class TestConsentStep:
    def test_all_three_required(self):
        errors = TYPED_UPLOAD_STEPS.validate(5, ApplicationDraft(accept_terms=True))
        assert set(errors) == {ErrorKey("consent_to_store"), ErrorKey("consent_to_contact")}

    def test_all_true_passes(self, valid_draft):
        assert TYPED_UPLOAD_STEPS.validate(5, valid_draft) == {}


class TestCheckAttachment:
    """Tests for the pre-attach check."""

    def test_type_must_be_selected_first(self, make_document):
        errors = TYPED_UPLOAD_STEPS.check_attachment(None, make_document())
        assert errors == {DOCUMENT_TYPE_KEY: "Please select a document type first"}

    def test_unknown_type(self, make_document):
        errors = TYPED_UPLOAD_STEPS.check_attachment("passport_photo", make_document())
        assert DOCUMENT_TYPE_KEY in errors

    def test_unsupported_format(self, make_document):
        file = make_document(file_name="notes.docx", content_type="application/msword")
        errors = TYPED_UPLOAD_STEPS.check_attachment(DocumentType.OTHER, file)
        assert errors[DOCUMENT_UPLOAD_KEY].startswith("File notes.docx is not a supported format")

    def test_oversized_file(self, make_document):
        file = make_document(file_name="scan.pdf", file_size=10 * 1024 * 1024 + 1)
        errors = TYPED_UPLOAD_STEPS.check_attachment("id_document", file)
        assert errors == {
            DOCUMENT_UPLOAD_KEY: "File scan.pdf is too large. Maximum file size is 10MB."
        }

    def test_accepted_file(self, make_document):
        assert TYPED_UPLOAD_STEPS.check_attachment("id_document", make_document()) == {}


class TestEndToEndValidation:
    def test_scenario_draft_passes_every_step(self, make_document):
        draft = ApplicationDraft(
            full_name="Thabo Nkosi",
            id_number="8001015009087",
            entity_type="individual",
            mobile_number="+27821234567",
            email="thabo@example.co.za",
            physical_address="12 Main Road, Bellville",
            province="Western Cape",
            trucks=[
                Truck(
                    vehicle_type="Truck (Rigid)",
                    load_capacity="5 Tons",
                    horse_registration="ABC123GP",
                )
            ],
            bank_name="Capitec Bank",
            account_holder_name="Thabo Nkosi",
            account_number="1234567890",
            account_type="Savings Account",
            branch_code="470010",
            documents=[make_document(DocumentType.ID_DOCUMENT, "id.pdf")],
            accept_terms=True,
            consent_to_store=True,
            consent_to_contact=True,
        )
        assert all(errors == {} for errors in TYPED_UPLOAD_STEPS.validate_all(draft).values())
