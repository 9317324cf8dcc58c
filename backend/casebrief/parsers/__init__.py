from casebrief.parsers.base import ExtractionResult
from casebrief.parsers.registry import ParserRegistry
from casebrief.parsers.text_parser import TEXT_FILE_EXTENSIONS

__all__ = ["ExtractionResult", "ParserRegistry", "TEXT_FILE_EXTENSIONS"]
