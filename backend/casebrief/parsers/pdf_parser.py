from __future__ import annotations

import io
from pathlib import Path

from casebrief.parsers.base import ExtractionResult

PAGE_SEPARATOR = "\n\n"


class PdfDocumentParser:
    parser_id = "pdf"
    _CONTENT_TYPES = {"application/pdf"}

    def supports(self, *, file_name: str, content_type: str) -> bool:
        if content_type.lower() in self._CONTENT_TYPES:
            return True
        return Path(file_name).suffix.lower() == ".pdf"

    def extract(self, *, content: bytes) -> ExtractionResult:
        from pypdf import PdfReader

        try:
            reader = PdfReader(io.BytesIO(content), strict=False)
            pages = [" ".join((page.extract_text() or "").split()) for page in reader.pages]
        except Exception as exc:
            return ExtractionResult(parser_id=self.parser_id, text="", error=f"pdf parse failed: {exc}")

        return ExtractionResult(
            parser_id=self.parser_id,
            text=PAGE_SEPARATOR.join(page for page in pages if page),
        )
