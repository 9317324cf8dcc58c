from __future__ import annotations

from pathlib import Path
from typing import Callable

from fastapi import APIRouter, File, HTTPException, UploadFile

from casebrief.api.contracts import (
    CaseTypeRequest,
    DocumentListResponse,
    DocumentView,
    GenerateRequest,
    RefinementRequest,
)
from casebrief.config import settings
from casebrief.pipeline import DocumentPipeline

PipelineGetter = Callable[[], DocumentPipeline]


def _list_response(pipeline: DocumentPipeline, item_key: str) -> DocumentListResponse:
    documents = pipeline.list_documents(item_key)
    return DocumentListResponse(
        item_key=item_key,
        documents=[DocumentView.from_document(index, document) for index, document in enumerate(documents)],
    )


def _document_response(pipeline: DocumentPipeline, item_key: str, index: int) -> DocumentView:
    documents = pipeline.list_documents(item_key)
    return DocumentView.from_document(index, documents[index])


def _require_index(pipeline: DocumentPipeline, item_key: str, index: int) -> None:
    if index < 0 or index >= len(pipeline.list_documents(item_key)):
        raise HTTPException(status_code=404, detail=f"No document at index {index} for item '{item_key}'.")


def build_documents_router(*, get_pipeline: PipelineGetter) -> APIRouter:
    router = APIRouter(prefix="/items/{item_key}/documents")

    @router.get("")
    def list_documents(item_key: str) -> DocumentListResponse:
        return _list_response(get_pipeline(), item_key)

    @router.post("")
    async def upload_documents(item_key: str, files: list[UploadFile] = File(...)) -> DocumentListResponse:
        if len(files) > settings.max_upload_files:
            raise HTTPException(
                status_code=413,
                detail=f"Too many files in one upload (max {settings.max_upload_files}).",
            )

        buffered: list[tuple[str, str, bytes]] = []
        for upload in files:
            safe_name = Path(upload.filename or "upload.bin").name or "upload.bin"
            content = await upload.read(settings.max_upload_file_bytes + 1)
            if len(content) > settings.max_upload_file_bytes:
                raise HTTPException(
                    status_code=413,
                    detail=f"File '{safe_name}' exceeds max size of {settings.max_upload_file_bytes} bytes.",
                )
            buffered.append((safe_name, upload.content_type or "application/octet-stream", content))

        pipeline = get_pipeline()
        for safe_name, content_type, content in buffered:
            await pipeline.ingest_file(item_key, safe_name, content, content_type)
        return _list_response(pipeline, item_key)

    @router.put("/{index}/case-type")
    def select_case_type(item_key: str, index: int, payload: CaseTypeRequest) -> DocumentView:
        pipeline = get_pipeline()
        _require_index(pipeline, item_key, index)
        pipeline.select_case_type(item_key, index, payload.case_type)
        return _document_response(pipeline, item_key, index)

    @router.put("/{index}/refinement")
    def set_refinement(item_key: str, index: int, payload: RefinementRequest) -> DocumentView:
        pipeline = get_pipeline()
        _require_index(pipeline, item_key, index)
        pipeline.set_refinement(item_key, index, payload.refinement)
        return _document_response(pipeline, item_key, index)

    @router.post("/{index}/generate")
    async def generate(item_key: str, index: int, payload: GenerateRequest | None = None) -> DocumentListResponse:
        pipeline = get_pipeline()
        _require_index(pipeline, item_key, index)
        await pipeline.generate(item_key, index, subject=payload.subject if payload else None)
        return _list_response(pipeline, item_key)

    @router.delete("/{index}")
    def remove_document(item_key: str, index: int) -> DocumentListResponse:
        pipeline = get_pipeline()
        _require_index(pipeline, item_key, index)
        pipeline.remove(item_key, index)
        return _list_response(pipeline, item_key)

    return router
