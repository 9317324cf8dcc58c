from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Union

from casebrief.documents import (
    EXTRACTION_EMPTY_MESSAGE,
    GATE_STATUSES,
    MIN_EXTRACTED_CHARS,
    Document,
    DocumentStatus,
    gate_status,
    trimmed_length,
    utc_now,
)
from casebrief.prompts import CaseType


@dataclass(frozen=True)
class ExtractionStarted:
    pass


@dataclass(frozen=True)
class ExtractionSucceeded:
    text: str


@dataclass(frozen=True)
class ExtractionFailed:
    reason: str


@dataclass(frozen=True)
class CaseTypeSelected:
    case_type: CaseType


@dataclass(frozen=True)
class RefinementChanged:
    refinement: str


@dataclass(frozen=True)
class GenerationRejected:
    message: str


@dataclass(frozen=True)
class GenerationStarted:
    token: str
    truncated: bool


@dataclass(frozen=True)
class GenerationSucceeded:
    token: str
    summary: str


@dataclass(frozen=True)
class GenerationFailed:
    token: str
    message: str


LifecycleEvent = Union[
    ExtractionStarted,
    ExtractionSucceeded,
    ExtractionFailed,
    CaseTypeSelected,
    RefinementChanged,
    GenerationRejected,
    GenerationStarted,
    GenerationSucceeded,
    GenerationFailed,
]


GENERATABLE_STATUSES = frozenset(
    {DocumentStatus.EXTRACTED, DocumentStatus.GENERATING, DocumentStatus.READY, DocumentStatus.FAILED}
)


class InvalidTransitionError(ValueError):
    """Raised when an event is not allowed from the document's current status."""


def is_stale(document: Document, token: str) -> bool:
    return document.status != DocumentStatus.GENERATING or document.request_token != token


def apply_event(
    document: Document,
    event: LifecycleEvent,
    *,
    now: datetime | None = None,
    min_chars: int = MIN_EXTRACTED_CHARS,
) -> Document:
    """Return the document that results from applying ``event``.

    Completions carrying a token other than the document's current
    ``request_token`` are stale and leave the document untouched.
    """

    stamp = now or utc_now()
    status = document.status

    if isinstance(event, ExtractionStarted):
        if status != DocumentStatus.IDLE:
            raise InvalidTransitionError(f"cannot start extraction from '{status.value}'")
        return document.model_copy(update={"status": DocumentStatus.EXTRACTING, "last_updated": stamp})

    if isinstance(event, (ExtractionSucceeded, ExtractionFailed)):
        if status not in {DocumentStatus.IDLE, DocumentStatus.EXTRACTING}:
            raise InvalidTransitionError(f"extraction already finished for '{document.file_name}'")
        text = event.text if isinstance(event, ExtractionSucceeded) else ""
        length = trimmed_length(text)
        if length == 0:
            reason = event.reason if isinstance(event, ExtractionFailed) else EXTRACTION_EMPTY_MESSAGE
            return document.model_copy(
                update={
                    "text": text,
                    "extracted_text_length": 0,
                    "status": DocumentStatus.EXTRACT_FAILED,
                    "error": reason,
                    "last_updated": stamp,
                }
            )
        return document.model_copy(
            update={
                "text": text,
                "extracted_text_length": length,
                "status": gate_status(
                    extracted_text_length=length,
                    case_type=document.case_type,
                    min_chars=min_chars,
                ),
                "error": "",
                "last_updated": stamp,
            }
        )

    if isinstance(event, CaseTypeSelected):
        update: dict[str, object] = {"case_type": CaseType(event.case_type), "last_updated": stamp}
        if status in GATE_STATUSES:
            update["status"] = gate_status(
                extracted_text_length=document.extracted_text_length,
                case_type=CaseType(event.case_type),
                min_chars=min_chars,
            )
            update["error"] = ""
        return document.model_copy(update=update)

    if isinstance(event, RefinementChanged):
        return document.model_copy(update={"refinement": event.refinement, "last_updated": stamp})

    if isinstance(event, GenerationRejected):
        return document.model_copy(update={"error": event.message, "last_updated": stamp})

    if isinstance(event, GenerationStarted):
        if status not in GENERATABLE_STATUSES:
            raise InvalidTransitionError(f"cannot generate from '{status.value}'")
        return document.model_copy(
            update={
                "status": DocumentStatus.GENERATING,
                "summary": "",
                "error": "",
                "truncated": event.truncated,
                "request_token": event.token,
                "last_updated": stamp,
            }
        )

    if isinstance(event, GenerationSucceeded):
        if is_stale(document, event.token):
            return document
        return document.model_copy(
            update={
                "status": DocumentStatus.READY,
                "summary": event.summary,
                "error": "",
                "request_token": None,
                "last_updated": stamp,
            }
        )

    if isinstance(event, GenerationFailed):
        if is_stale(document, event.token):
            return document
        return document.model_copy(
            update={
                "status": DocumentStatus.FAILED,
                "error": event.message,
                "request_token": None,
                "last_updated": stamp,
            }
        )

    raise InvalidTransitionError(f"unknown lifecycle event {event!r}")
