from __future__ import annotations

from casebrief.parsers.base import DocumentParser, ExtractionResult
from casebrief.parsers.docx_parser import DocxDocumentParser
from casebrief.parsers.pdf_parser import PdfDocumentParser
from casebrief.parsers.text_parser import TextDocumentParser


class ParserRegistry:
    def __init__(self, parsers: list[DocumentParser] | None = None) -> None:
        self._parsers = parsers or [
            PdfDocumentParser(),
            DocxDocumentParser(),
            TextDocumentParser(),
        ]

    def extract(self, *, content: bytes, file_name: str, content_type: str) -> ExtractionResult:
        for parser in self._parsers:
            if parser.supports(file_name=file_name, content_type=content_type):
                return parser.extract(content=content)
        return ExtractionResult(
            parser_id="none",
            text="",
            error="No parser registered for this file type.",
        )
