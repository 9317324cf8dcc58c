from __future__ import annotations

from pathlib import Path

from casebrief.parsers.base import ExtractionResult


TEXT_FILE_EXTENSIONS = {".txt", ".md", ".markdown"}


class TextDocumentParser:
    parser_id = "text"

    def supports(self, *, file_name: str, content_type: str) -> bool:
        if content_type.startswith("text/"):
            return True
        return Path(file_name).suffix.lower() in TEXT_FILE_EXTENSIONS

    def extract(self, *, content: bytes) -> ExtractionResult:
        for encoding in ("utf-8", "latin-1"):
            try:
                text = content.decode(encoding)
                break
            except UnicodeDecodeError:
                continue
        else:  # pragma: no cover - latin-1 decodes any byte sequence
            return ExtractionResult(parser_id=self.parser_id, text="", error="text decode failed")

        return ExtractionResult(parser_id=self.parser_id, text=text.replace("\r\n", "\n").replace("\f", "\n\n"))
