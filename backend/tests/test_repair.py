from __future__ import annotations

import asyncio

import pytest

from casebrief.generation import GenerationError
from casebrief.outline import is_valid_summary
from casebrief.prompts import FORMAT_REPAIR_SYSTEM_PROMPT
from casebrief.repair import generate_with_repair, repair_summary
from conftest import RecordingGenerator

INVALID_BRIEF = "## 1) Situation & Tension (SCQ)\n### Situation\n- Only one bullet"


def test_valid_first_response_needs_no_repair(valid_brief: str) -> None:
    generator = RecordingGenerator(valid_brief)

    result = asyncio.run(generate_with_repair(generator, "system", "user"))

    assert result.summary == valid_brief
    assert result.repaired is False
    assert result.calls == 1
    assert result.repaired_valid is None
    assert generator.calls == [{"system": "system", "user": "user"}]


def test_invalid_first_response_triggers_exactly_one_repair(valid_brief: str) -> None:
    generator = RecordingGenerator(INVALID_BRIEF, valid_brief)

    result = asyncio.run(generate_with_repair(generator, "system", "user"))

    assert result.summary == valid_brief
    assert result.repaired is True
    assert result.repaired_valid is True
    assert len(generator.calls) == 2
    assert generator.calls[1]["system"] == FORMAT_REPAIR_SYSTEM_PROMPT
    assert INVALID_BRIEF in generator.calls[1]["user"]


def test_repaired_text_is_accepted_without_revalidation() -> None:
    still_invalid = "## 2) Stakeholder Lenses\n- reformatted but still wrong"
    generator = RecordingGenerator(INVALID_BRIEF, still_invalid)

    result = asyncio.run(generate_with_repair(generator, "system", "user"))

    assert result.summary == still_invalid
    assert is_valid_summary(result.summary) is False
    assert result.repaired_valid is False
    assert len(generator.calls) == 2


def test_empty_first_response_fails_without_repair() -> None:
    generator = RecordingGenerator("   ")

    with pytest.raises(GenerationError, match="No summary generated."):
        asyncio.run(generate_with_repair(generator, "system", "user"))
    assert len(generator.calls) == 1


def test_empty_repair_response_fails() -> None:
    generator = RecordingGenerator(INVALID_BRIEF, "")

    with pytest.raises(GenerationError, match="No summary generated."):
        asyncio.run(generate_with_repair(generator, "system", "user"))
    assert len(generator.calls) == 2


def test_repair_call_errors_propagate() -> None:
    generator = RecordingGenerator(INVALID_BRIEF, GenerationError("throttled"))

    with pytest.raises(GenerationError, match="throttled"):
        asyncio.run(generate_with_repair(generator, "system", "user"))


def test_repair_summary_strips_whitespace() -> None:
    generator = RecordingGenerator("\n  reformatted  \n")

    assert asyncio.run(repair_summary(generator, INVALID_BRIEF)) == "reformatted"
