"""
Wizard State Machine

Owns the onboarding WizardState: current step, accumulated draft and the
per-field error map. Every operation replaces the state with a new value
and notifies change listeners (Draft Persistence subscribes here).

Rules:
- Forward moves (`next`, `submit`) run the full rule set of the current step.
  Backward moves (`previous`, `go_to`) never validate and never touch errors.
- Editing a field drops that field's error immediately, whatever the new
  value. Errors only come back on the next full step validation.
- Submission failures are reported in `submit_error`, apart from field
  errors, and leave the draft untouched.
"""

import logging
from collections.abc import Callable
from dataclasses import replace
from typing import TypeVar

from pydantic import BaseModel, ValidationError

from hauler_portal.modules.onboarding.schemas import (
    ApplicationDraft,
    DocumentRef,
    DocumentType,
    DraftSnapshot,
    ErrorKey,
    ErrorMap,
    Truck,
    WizardState,
)
from hauler_portal.modules.onboarding.steps import (
    DOCUMENT_TYPE_KEY,
    DOCUMENT_UPLOAD_KEY,
    TYPED_UPLOAD_STEPS,
    StepRegistry,
    UnknownStepError,
)
from hauler_portal.modules.onboarding.submission import SubmissionPipeline, SubmissionResult

logger = logging.getLogger(__name__)

ChangeListener = Callable[[WizardState], None]
ModelT = TypeVar("ModelT", bound=BaseModel)

FIX_FIELDS_MESSAGE = "Please correct the highlighted fields and try again."
SUBMIT_TO_FINISH_MESSAGE = "Submit your application to finish."

_DRAFT_FIELDS = frozenset(ApplicationDraft.model_fields)
_TRUCK_FIELDS = frozenset(Truck.model_fields)
_ATTACHMENT_KEYS = frozenset({DOCUMENT_TYPE_KEY, DOCUMENT_UPLOAD_KEY})


class WizardError(Exception):
    """Base exception for operations the wizard refuses outright."""


class SubmissionInProgressError(WizardError):
    def __init__(self):
        super().__init__("A submission is already in progress")


class InvalidWizardOperationError(WizardError):
    pass


def _without(errors: ErrorMap, predicate: Callable[[ErrorKey], bool]) -> ErrorMap:
    return {key: message for key, message in errors.items() if not predicate(key)}


def _merged(model: ModelT, changes: dict) -> ModelT:
    """
    Copy of `model` with `changes` applied and validated.

    Unchanged fields keep their instances, so attached file content survives.
    """
    try:
        return type(model).model_validate({**dict(model), **changes})
    except ValidationError as e:
        raise InvalidWizardOperationError(f"Invalid value: {e.errors()[0]['msg']}") from e


class OnboardingWizard:
    """
    Multi-step onboarding form.

    Usage:
        wizard = OnboardingWizard(TYPED_UPLOAD_STEPS, pipeline)
        wizard.update_data(full_name="Thabo Nkosi", entity_type="individual")
        if wizard.next():
            ...
        result = await wizard.submit()
    """

    def __init__(
        self,
        registry: StepRegistry = TYPED_UPLOAD_STEPS,
        pipeline: SubmissionPipeline | None = None,
        state: WizardState | None = None,
    ):
        self.registry = registry
        self.pipeline = pipeline
        self._state = state or WizardState()
        self._listeners: list[ChangeListener] = []
        self._submitting = False

    # ----------------------------------------
    # Read access
    # ----------------------------------------

    @property
    def state(self) -> WizardState:
        return self._state

    @property
    def current_step(self) -> int:
        return self._state.current_step

    @property
    def data(self) -> ApplicationDraft:
        return self._state.data

    @property
    def errors(self) -> ErrorMap:
        return dict(self._state.errors)

    @property
    def submit_error(self) -> str | None:
        return self._state.submit_error

    @property
    def total_steps(self) -> int:
        return self.registry.total_steps

    @property
    def is_submitting(self) -> bool:
        return self._submitting

    @property
    def is_confirmed(self) -> bool:
        return self._state.current_step == self.registry.terminal_step

    @property
    def progress(self) -> int:
        """Percent complete, 0 on the first step and 100 on confirmation."""
        return round((self.current_step - 1) / (self.total_steps - 1) * 100)

    # ----------------------------------------
    # Listeners
    # ----------------------------------------

    def subscribe(self, listener: ChangeListener) -> Callable[[], None]:
        """Register a change listener. Returns a function that unsubscribes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _commit(self, **changes) -> None:
        self._state = replace(self._state, **changes)
        for listener in list(self._listeners):
            try:
                listener(self._state)
            except Exception as e:
                logger.error(f"Wizard change listener failed: {e}")

    # ----------------------------------------
    # Editing
    # ----------------------------------------

    def update_data(self, **partial) -> None:
        """
        Merge fields into the draft.

        Clears every error owned by the given fields, including all per-truck
        errors when `trucks` is replaced.
        Values are validated against the draft model; a value of the wrong
        shape raises InvalidWizardOperationError and leaves the draft as it was.
        """
        unknown = set(partial) - _DRAFT_FIELDS
        if unknown:
            raise InvalidWizardOperationError(f"Unknown draft fields: {sorted(unknown)}")

        self._commit(
            data=_merged(self._state.data, partial),
            errors=_without(self._state.errors, lambda key: key.owner in partial),
        )

    def _truck_index(self, index: int) -> int:
        if not 0 <= index < len(self._state.data.trucks):
            raise InvalidWizardOperationError(f"No truck at position {index}")
        return index

    def update_truck(self, index: int, **fields) -> None:
        """Edit one truck. Only that truck's edited field errors are cleared."""
        self._truck_index(index)
        unknown = set(fields) - _TRUCK_FIELDS
        if unknown:
            raise InvalidWizardOperationError(f"Unknown truck fields: {sorted(unknown)}")

        trucks = list(self._state.data.trucks)
        trucks[index] = _merged(trucks[index], fields)

        self._commit(
            data=_merged(self._state.data, {"trucks": trucks}),
            errors=_without(
                self._state.errors,
                lambda key: key.entity == "truck" and key.index == index and key.field in fields,
            ),
        )

    def add_truck(self) -> int:
        """Append a blank truck and return its position."""
        self.update_data(trucks=[*self._state.data.trucks, Truck()])
        return len(self._state.data.trucks) - 1

    def remove_truck(self, index: int) -> None:
        """Remove a truck. The last remaining truck cannot be removed."""
        self._truck_index(index)
        trucks = list(self._state.data.trucks)
        if len(trucks) == 1:
            raise InvalidWizardOperationError("At least one truck is required")
        del trucks[index]
        self.update_data(trucks=trucks)

    def attach_document(
        self,
        document_type: DocumentType | str | None,
        file: DocumentRef,
    ) -> ErrorMap:
        """
        Attach a file.

        With typed uploads the file is checked before it is accepted and
        tagged with `document_type`; a rejected file leaves the draft as it
        was and the reason is returned and stored in the error map. On the
        legacy steps the file joins the vehicle document list and is only
        format and size checked when the step is validated.
        """
        errors = _without(self._state.errors, lambda key: key in _ATTACHMENT_KEYS)

        if not self.registry.typed_uploads:
            if document_type:
                file = file.model_copy(update={"document_type": DocumentType(document_type)})
            self.update_data(vehicle_documents=[*self._state.data.vehicle_documents, file])
            return {}

        rejected = self.registry.check_attachment(document_type, file)
        if rejected:
            self._commit(errors={**errors, **rejected})
            return rejected

        tagged = file.model_copy(update={"document_type": DocumentType(document_type)})
        self._state = replace(self._state, errors=errors)
        self.update_data(documents=[*self._state.data.documents, tagged])
        return {}

    def remove_document(self, index: int) -> None:
        field = "documents" if self.registry.typed_uploads else "vehicle_documents"
        documents = list(getattr(self._state.data, field))
        if not 0 <= index < len(documents):
            raise InvalidWizardOperationError(f"No document at position {index}")
        del documents[index]
        self.update_data(**{field: documents})

    # ----------------------------------------
    # Navigation
    # ----------------------------------------

    def validate_current_step(self) -> bool:
        """Run the current step's full rule set and replace the error map."""
        errors = self.registry.validate(self.current_step, self._state.data)
        self._commit(errors=errors)
        return not errors

    def next(self) -> bool:
        """
        Validate the current step and advance one step if it passes.

        The terminal step is only reached through `submit()`. On the last
        data step a passing `next()` stays put and asks for submission.
        """
        if self.is_confirmed:
            return False

        errors = self.registry.validate(self.current_step, self._state.data)
        if errors:
            self._commit(errors=errors)
            return False

        if self.current_step >= self.registry.last_data_step:
            self._commit(errors={}, submit_error=SUBMIT_TO_FINISH_MESSAGE)
            return False

        self._commit(current_step=self.current_step + 1, errors={}, submit_error=None)
        return True

    def previous(self) -> bool:
        """Go back one step. Never validates and keeps field errors."""
        if self.current_step <= 1 or self.is_confirmed:
            return False
        self._commit(current_step=self.current_step - 1, submit_error=None)
        return True

    def go_to(self, step: int) -> bool:
        """Jump back to an earlier step. Forward jumps are refused."""
        if not 1 <= step <= self.total_steps:
            raise UnknownStepError(step, self.total_steps)
        if step >= self.current_step or self.is_confirmed:
            return False
        self._commit(current_step=step, submit_error=None)
        return True

    # ----------------------------------------
    # Submission
    # ----------------------------------------

    async def submit(self) -> SubmissionResult:
        """
        Validate the last data step and submit through the pipeline.

        On success the returned identifiers are stored in the draft and the
        wizard moves to the confirmation step. On failure the wizard stays
        where it is with `submit_error` set.

        Raises:
            SubmissionInProgressError: If a submission is already running
            InvalidWizardOperationError: If not on the last data step or no
                pipeline is configured
        """
        if self._submitting:
            raise SubmissionInProgressError()
        if self.current_step != self.registry.last_data_step:
            raise InvalidWizardOperationError(
                f"Submit is only allowed from step {self.registry.last_data_step}"
            )
        if self.pipeline is None:
            raise InvalidWizardOperationError("No submission pipeline configured")

        if not self.validate_current_step():
            return SubmissionResult.failed(FIX_FIELDS_MESSAGE)

        self._submitting = True
        try:
            self._commit(submit_error=None)
            result = await self.pipeline.submit(self._state.data)
        finally:
            self._submitting = False

        if not result.success:
            self._commit(submit_error=result.error or FIX_FIELDS_MESSAGE)
            return result

        data = self._state.data.model_copy(
            update={
                "application_id": result.application_id,
                "application_number": result.application_number,
            }
        )
        self._commit(
            current_step=self.registry.terminal_step,
            data=data,
            errors={},
            submit_error=None,
        )
        logger.info(f"Onboarding completed with application {result.application_number}")
        return result

    # ----------------------------------------
    # Draft restore
    # ----------------------------------------

    def restore(self, snapshot: DraftSnapshot) -> None:
        """
        Replace the state with a saved draft.

        The step is clamped to the data-entry range. Restored attachments
        carry metadata only and are flagged for re-selection when their
        step is validated.
        """
        step = min(max(snapshot.current_step, 1), self.registry.last_data_step)
        self._commit(current_step=step, data=snapshot.data, errors={}, submit_error=None)

    def reset(self) -> None:
        """Start over with an empty draft."""
        self._commit(current_step=1, data=ApplicationDraft(), errors={}, submit_error=None)
