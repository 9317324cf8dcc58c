from __future__ import annotations

import io
from pathlib import Path

from casebrief.parsers.base import ExtractionResult


class DocxDocumentParser:
    parser_id = "docx"
    _CONTENT_TYPES = {
        "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    }

    def supports(self, *, file_name: str, content_type: str) -> bool:
        if content_type.lower() in self._CONTENT_TYPES:
            return True
        return Path(file_name).suffix.lower() == ".docx"

    def extract(self, *, content: bytes) -> ExtractionResult:
        from docx import Document

        try:
            document = Document(io.BytesIO(content))
        except Exception as exc:
            return ExtractionResult(parser_id=self.parser_id, text="", error=f"docx parse failed: {exc}")

        lines = [" ".join(paragraph.text.split()) for paragraph in document.paragraphs]
        # Case exhibits are usually tables; keep their rows as pipe-joined lines.
        for table in document.tables:
            for row in table.rows:
                cells = [" ".join(cell.text.split()) for cell in row.cells]
                lines.append(" | ".join(cell for cell in cells if cell))

        return ExtractionResult(
            parser_id=self.parser_id,
            text="\n".join(line for line in lines if line),
        )
