from __future__ import annotations

from datetime import datetime, timezone

import pytest

from casebrief.documents import Document, DocumentStatus, EXTRACTION_EMPTY_MESSAGE
from casebrief.lifecycle import (
    CaseTypeSelected,
    ExtractionFailed,
    ExtractionStarted,
    ExtractionSucceeded,
    GenerationFailed,
    GenerationRejected,
    GenerationStarted,
    GenerationSucceeded,
    InvalidTransitionError,
    RefinementChanged,
    apply_event,
)
from casebrief.prompts import CaseType

FIXED_NOW = datetime(2026, 3, 2, 9, 30, tzinfo=timezone.utc)


def _extracted(text: str, **updates: object) -> Document:
    document = apply_event(Document(file_name="case.pdf"), ExtractionStarted(), now=FIXED_NOW)
    document = apply_event(document, ExtractionSucceeded(text), now=FIXED_NOW)
    return document.model_copy(update=updates) if updates else document


def test_extraction_captures_trimmed_length_once(case_text: str) -> None:
    document = _extracted(f"   {case_text}   ")

    assert document.extracted_text_length == len(case_text.strip())
    assert document.status == DocumentStatus.AWAITING_CASE_TYPE
    assert document.last_updated == FIXED_NOW

    edited = apply_event(document, RefinementChanged("focus on debt"))
    edited = apply_event(edited, CaseTypeSelected(CaseType.FINANCE))
    assert edited.extracted_text_length == document.extracted_text_length


def test_short_text_lands_in_too_short() -> None:
    document = _extracted("x" * 299)

    assert document.status == DocumentStatus.TOO_SHORT
    assert apply_event(document, CaseTypeSelected(CaseType.FINANCE)).status == DocumentStatus.TOO_SHORT


def test_empty_extraction_is_a_failure() -> None:
    document = _extracted("   ")

    assert document.status == DocumentStatus.EXTRACT_FAILED
    assert document.error == EXTRACTION_EMPTY_MESSAGE
    assert document.extracted_text_length == 0


def test_extraction_failure_keeps_reason() -> None:
    document = apply_event(Document(file_name="scan.pdf"), ExtractionFailed("Failed to read this document."))

    assert document.status == DocumentStatus.EXTRACT_FAILED
    assert document.error == "Failed to read this document."


def test_case_type_selection_clears_guard_error(case_text: str) -> None:
    document = apply_event(_extracted(case_text), GenerationRejected("Select a case type first."))
    assert document.error

    selected = apply_event(document, CaseTypeSelected(CaseType.MARKETING))

    assert selected.status == DocumentStatus.EXTRACTED
    assert selected.case_type == CaseType.MARKETING
    assert selected.error == ""


def test_generation_round_trip(case_text: str) -> None:
    document = apply_event(_extracted(case_text), CaseTypeSelected(CaseType.FINANCE))

    generating = apply_event(document, GenerationStarted(token="t1", truncated=False))
    assert generating.loading is True
    assert generating.summary == ""
    assert generating.error == ""

    ready = apply_event(generating, GenerationSucceeded(token="t1", summary="brief"))
    assert ready.status == DocumentStatus.READY
    assert ready.loading is False
    assert ready.summary == "brief"
    assert ready.request_token is None


def test_failure_sets_error_and_leaves_summary(case_text: str) -> None:
    document = apply_event(_extracted(case_text), CaseTypeSelected(CaseType.FINANCE))
    generating = apply_event(document, GenerationStarted(token="t1", truncated=True))

    failed = apply_event(generating, GenerationFailed(token="t1", message="No summary generated."))

    assert failed.status == DocumentStatus.FAILED
    assert failed.error == "No summary generated."
    assert failed.summary == generating.summary
    assert failed.truncated is True
    assert failed.loading is False


def test_stale_completion_is_ignored(case_text: str) -> None:
    document = apply_event(_extracted(case_text), CaseTypeSelected(CaseType.FINANCE))
    first = apply_event(document, GenerationStarted(token="old", truncated=False))
    second = apply_event(first, GenerationStarted(token="new", truncated=False))

    assert apply_event(second, GenerationSucceeded(token="old", summary="stale")) is second
    assert apply_event(second, GenerationFailed(token="old", message="boom")) is second


def test_edits_do_not_leave_ready(case_text: str) -> None:
    document = apply_event(_extracted(case_text), CaseTypeSelected(CaseType.FINANCE))
    document = apply_event(document, GenerationStarted(token="t1", truncated=False))
    ready = apply_event(document, GenerationSucceeded(token="t1", summary="brief"))

    edited = apply_event(ready, CaseTypeSelected(CaseType.OPERATIONS))
    edited = apply_event(edited, RefinementChanged("capacity"))

    assert edited.status == DocumentStatus.READY
    assert edited.summary == "brief"
    assert edited.case_type == CaseType.OPERATIONS


@pytest.mark.parametrize("text", ["x" * 10, ""])
def test_generation_cannot_start_before_gate_passes(text: str) -> None:
    document = _extracted(text)

    with pytest.raises(InvalidTransitionError):
        apply_event(document, GenerationStarted(token="t1", truncated=False))


def test_extraction_only_runs_once(case_text: str) -> None:
    with pytest.raises(InvalidTransitionError):
        apply_event(_extracted(case_text), ExtractionSucceeded("again"))
