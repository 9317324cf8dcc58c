from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Mapping
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, computed_field
from pydantic.alias_generators import to_camel

from casebrief.prompts import CaseType

MIN_EXTRACTED_CHARS = 300
MAX_SOURCE_CHARS = 25_000

EXTRACTION_EMPTY_MESSAGE = "Could not extract text from this document."
EXTRACTION_FAILED_MESSAGE = "Failed to read this document."
INTERRUPTED_MESSAGE = "Generation was interrupted."


class DocumentStatus(str, Enum):
    IDLE = "idle"
    EXTRACTING = "extracting"
    EXTRACT_FAILED = "extract_failed"
    TOO_SHORT = "too_short"
    AWAITING_CASE_TYPE = "awaiting_case_type"
    EXTRACTED = "extracted"
    GENERATING = "generating"
    READY = "ready"
    FAILED = "failed"


GATE_STATUSES = frozenset(
    {DocumentStatus.TOO_SHORT, DocumentStatus.AWAITING_CASE_TYPE, DocumentStatus.EXTRACTED}
)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def trimmed_length(text: str) -> int:
    return len((text or "").strip())


class Document(BaseModel):
    """Processing record for one uploaded source document.

    Records are immutable; every change produces a new instance through
    ``casebrief.lifecycle.apply_event``.
    """

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    id: str = Field(default_factory=lambda: str(uuid4()))
    file_name: str
    text: str = ""
    extracted_text_length: int = 0
    case_type: CaseType | None = None
    refinement: str = ""
    summary: str = ""
    truncated: bool = False
    error: str = ""
    status: DocumentStatus = DocumentStatus.IDLE
    request_token: str | None = None
    last_updated: datetime = Field(default_factory=utc_now)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def loading(self) -> bool:
        return self.status == DocumentStatus.GENERATING

    def to_record(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


def gate_status(
    *,
    extracted_text_length: int,
    case_type: CaseType | None,
    min_chars: int = MIN_EXTRACTED_CHARS,
) -> DocumentStatus:
    if extracted_text_length < min_chars:
        return DocumentStatus.TOO_SHORT
    if case_type is None:
        return DocumentStatus.AWAITING_CASE_TYPE
    return DocumentStatus.EXTRACTED


def _coerce_case_type(value: Any) -> CaseType | None:
    if isinstance(value, CaseType):
        return value
    try:
        return CaseType(str(value))
    except ValueError:
        return None


def _coerce_length(value: Any, text: str) -> int:
    if isinstance(value, bool):
        return trimmed_length(text)
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        return trimmed_length(text)
    return parsed if parsed >= 0 else trimmed_length(text)


def _coerce_flag(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() in {"true", "1", "yes"}
    if isinstance(value, (int, float)):
        return value != 0
    return False


def _coerce_status(value: Any) -> DocumentStatus | None:
    try:
        return DocumentStatus(str(value))
    except ValueError:
        return None


def _coerce_timestamp(value: Any) -> datetime | None:
    if isinstance(value, datetime):
        return value
    if not value:
        return None
    try:
        return datetime.fromisoformat(str(value))
    except ValueError:
        return None


def _derive_status(
    *,
    text: str,
    summary: str,
    error: str,
    extracted_text_length: int,
    case_type: CaseType | None,
) -> DocumentStatus:
    if not text.strip():
        return DocumentStatus.EXTRACT_FAILED
    if summary:
        return DocumentStatus.READY
    gate = gate_status(extracted_text_length=extracted_text_length, case_type=case_type)
    if error and gate == DocumentStatus.EXTRACTED:
        return DocumentStatus.FAILED
    return gate


def document_from_record(raw: Mapping[str, Any]) -> Document:
    """Rehydrate a persisted record, filling in fields older snapshots lack."""

    text = str(raw.get("text") or "")
    summary = str(raw.get("summary") or "")
    error = str(raw.get("error") or "")
    case_type = _coerce_case_type(raw.get("caseType"))
    extracted_text_length = _coerce_length(raw.get("extractedTextLength"), text)

    status = _coerce_status(raw.get("status"))
    if status is None:
        status = _derive_status(
            text=text,
            summary=summary,
            error=error,
            extracted_text_length=extracted_text_length,
            case_type=case_type,
        )
    # Nothing in flight survives a reload.
    if status == DocumentStatus.GENERATING or _coerce_flag(raw.get("loading")):
        status = DocumentStatus.FAILED
        error = INTERRUPTED_MESSAGE

    payload: dict[str, Any] = {
        "file_name": str(raw.get("fileName") or "document"),
        "text": text,
        "extracted_text_length": extracted_text_length,
        "case_type": case_type,
        "refinement": str(raw.get("refinement") or ""),
        "summary": summary,
        "truncated": _coerce_flag(raw.get("truncated")),
        "error": error,
        "status": status,
        "request_token": None,
    }
    if raw.get("id"):
        payload["id"] = str(raw["id"])
    last_updated = _coerce_timestamp(raw.get("lastUpdated"))
    if last_updated is not None:
        payload["last_updated"] = last_updated
    return Document.model_validate(payload)
