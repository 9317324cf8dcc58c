from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from casebrief.documents import Document, DocumentStatus
from casebrief.prompts import CaseType


class CaseTypeRequest(BaseModel):
    case_type: CaseType


class RefinementRequest(BaseModel):
    refinement: str = Field(default="", max_length=2000)


class GenerateRequest(BaseModel):
    subject: str | None = Field(default=None, max_length=200)


class DocumentView(BaseModel):
    """Document as the host UI sees it; the full source text stays server-side."""

    index: int
    id: str
    file_name: str
    status: DocumentStatus
    case_type: CaseType | None
    refinement: str
    summary: str
    loading: bool
    error: str
    truncated: bool
    extracted_text_length: int
    last_updated: datetime

    @classmethod
    def from_document(cls, index: int, document: Document) -> "DocumentView":
        return cls(
            index=index,
            id=document.id,
            file_name=document.file_name,
            status=document.status,
            case_type=document.case_type,
            refinement=document.refinement,
            summary=document.summary,
            loading=document.loading,
            error=document.error,
            truncated=document.truncated,
            extracted_text_length=document.extracted_text_length,
            last_updated=document.last_updated,
        )


class DocumentListResponse(BaseModel):
    item_key: str
    documents: list[DocumentView]
