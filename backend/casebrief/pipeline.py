from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import Callable
from uuid import uuid4

from casebrief.config import Settings, settings as default_settings
from casebrief.documents import (
    EXTRACTION_FAILED_MESSAGE,
    Document,
    utc_now,
)
from casebrief.generation import TextGenerator
from casebrief.lifecycle import (
    CaseTypeSelected,
    ExtractionFailed,
    ExtractionStarted,
    ExtractionSucceeded,
    GenerationFailed,
    GenerationRejected,
    GenerationStarted,
    GenerationSucceeded,
    LifecycleEvent,
    RefinementChanged,
    apply_event,
)
from casebrief.parsers import ParserRegistry
from casebrief.prompts import CaseType, PromptParams, build_system_prompt, build_user_message
from casebrief.repair import generate_with_repair
from casebrief.repository import DocumentRepository

logger = logging.getLogger("casebrief.pipeline")

SUMMARIZATION_FAILED_MESSAGE = "Summarization failed."
MISSING_CASE_TYPE_MESSAGE = "Select a case type before generating a summary."


class GenerationRejectedError(ValueError):
    """Raised by the pre-flight checks that block a generation request."""


class TooShortError(GenerationRejectedError):
    pass


class MissingCaseTypeError(GenerationRejectedError):
    pass


def check_generation_allowed(document: Document, *, min_chars: int) -> None:
    if document.extracted_text_length < min_chars:
        raise TooShortError(
            f"Not enough text extracted to generate a summary "
            f"({document.extracted_text_length} of {min_chars} required characters)."
        )
    if document.case_type is None:
        raise MissingCaseTypeError(MISSING_CASE_TYPE_MESSAGE)


class DocumentPipeline:
    """Drives every uploaded document from extraction to a stored case brief.

    All operations address documents by ``(item_key, index)`` the way the host
    UI lists them. A generation request remembers the document's id and its
    request token, so a result that arrives after the document was removed, or
    after a newer request started, is dropped instead of overwriting newer
    state.
    """

    def __init__(
        self,
        repository: DocumentRepository,
        generator: TextGenerator,
        *,
        settings: Settings | None = None,
        parsers: ParserRegistry | None = None,
        clock: Callable[[], datetime] = utc_now,
        token_factory: Callable[[], str] | None = None,
    ) -> None:
        self._repository = repository
        self._generator = generator
        self._settings = settings or default_settings
        self._parsers = parsers or ParserRegistry()
        self._clock = clock
        self._token_factory = token_factory or (lambda: uuid4().hex)

    def list_documents(self, item_key: str) -> list[Document]:
        return self._repository.list(item_key)

    def add_document(
        self,
        item_key: str,
        file_name: str,
        text: str | None = None,
        error: str | None = None,
    ) -> Document:
        document = self._transition(Document(file_name=file_name), ExtractionStarted())
        if error is not None or text is None:
            event: LifecycleEvent = ExtractionFailed(error or EXTRACTION_FAILED_MESSAGE)
        else:
            event = ExtractionSucceeded(text)
        document = self._transition(document, event)
        index = self._repository.append(item_key, document)
        logger.info(
            "document_added",
            extra={
                "event": "document_added",
                "item_key": item_key,
                "index": index,
                "status": document.status.value,
                "extracted_text_length": document.extracted_text_length,
            },
        )
        return document

    async def ingest_file(self, item_key: str, file_name: str, content: bytes, content_type: str) -> Document:
        result = await asyncio.to_thread(
            self._parsers.extract,
            content=content,
            file_name=file_name,
            content_type=content_type,
        )
        if result.error is not None:
            logger.warning(
                "document_extraction_failed",
                extra={
                    "event": "document_extraction_failed",
                    "item_key": item_key,
                    "parser_id": result.parser_id,
                    "error": result.error,
                },
            )
            return self.add_document(item_key, file_name, error=EXTRACTION_FAILED_MESSAGE)
        return self.add_document(item_key, file_name, text=result.text)

    def select_case_type(self, item_key: str, index: int, case_type: CaseType) -> Document:
        return self._apply(item_key, index, CaseTypeSelected(CaseType(case_type)))

    def set_refinement(self, item_key: str, index: int, text: str) -> Document:
        return self._apply(item_key, index, RefinementChanged(text))

    def remove(self, item_key: str, index: int) -> Document:
        removed = self._repository.remove(item_key, index)
        logger.info(
            "document_removed",
            extra={"event": "document_removed", "item_key": item_key, "index": index, "status": removed.status.value},
        )
        return removed

    async def generate(self, item_key: str, index: int, *, subject: str | None = None) -> Document | None:
        """Generate (or regenerate) the case brief for one document.

        Returns the stored document once the request settles, or ``None`` when
        the document was removed while the request was in flight.
        """

        document = self._repository.get(item_key, index)
        try:
            check_generation_allowed(document, min_chars=self._settings.min_extracted_chars)
        except GenerationRejectedError as exc:
            logger.info(
                "generation_rejected",
                extra={
                    "event": "generation_rejected",
                    "item_key": item_key,
                    "index": index,
                    "reason": type(exc).__name__,
                },
            )
            return self._apply(item_key, index, GenerationRejected(str(exc)))

        source_text = document.text[: self._settings.max_source_chars]
        token = self._token_factory()
        started = self._apply(
            item_key,
            index,
            GenerationStarted(token=token, truncated=len(source_text) < len(document.text)),
        )
        system_prompt = build_system_prompt(
            PromptParams(
                case_type=started.case_type,
                subject=subject,
                session_id=item_key,
                refinement=started.refinement,
            )
        )
        logger.info(
            "generation_started",
            extra={
                "event": "generation_started",
                "item_key": item_key,
                "index": index,
                "case_type": started.case_type.value if started.case_type else None,
                "source_chars": len(source_text),
                "truncated": started.truncated,
            },
        )

        try:
            result = await generate_with_repair(self._generator, system_prompt, build_user_message(source_text))
        except Exception as exc:
            message = str(exc).strip() or SUMMARIZATION_FAILED_MESSAGE
            logger.warning(
                "generation_failed",
                extra={"event": "generation_failed", "item_key": item_key, "error": message},
            )
            return self._complete(item_key, started.id, GenerationFailed(token=token, message=message))

        logger.info(
            "generation_completed",
            extra={
                "event": "generation_completed",
                "item_key": item_key,
                "repaired": result.repaired,
                "repaired_valid": result.repaired_valid,
                "calls": result.calls,
                "summary_chars": len(result.summary),
            },
        )
        return self._complete(item_key, started.id, GenerationSucceeded(token=token, summary=result.summary))

    def _transition(self, document: Document, event: LifecycleEvent) -> Document:
        return apply_event(document, event, now=self._clock(), min_chars=self._settings.min_extracted_chars)

    def _apply(self, item_key: str, index: int, event: LifecycleEvent) -> Document:
        updated = self._transition(self._repository.get(item_key, index), event)
        self._repository.upsert(item_key, index, updated)
        return updated

    def _complete(
        self,
        item_key: str,
        document_id: str,
        event: GenerationSucceeded | GenerationFailed,
    ) -> Document | None:
        located = self._repository.find(item_key, document_id)
        if located is None:
            logger.info(
                "generation_result_discarded",
                extra={"event": "generation_result_discarded", "item_key": item_key, "reason": "removed"},
            )
            return None

        index, current = located
        if current.request_token != event.token:
            logger.info(
                "generation_result_discarded",
                extra={"event": "generation_result_discarded", "item_key": item_key, "reason": "superseded"},
            )
            return current

        updated = self._transition(current, event)
        self._repository.upsert(item_key, index, updated)
        return updated
