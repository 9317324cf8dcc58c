from __future__ import annotations

import pytest
from pydantic import ValidationError

from casebrief.prompts import (
    CASE_GUIDANCE_BY_TYPE,
    FORMAT_REPAIR_SYSTEM_PROMPT,
    CaseType,
    PromptParams,
    build_format_repair_user_prompt,
    build_system_prompt,
    get_framework_options,
)


@pytest.mark.parametrize("case_type", list(CaseType))
def test_every_case_type_injects_name_frameworks_and_guidance(case_type: CaseType) -> None:
    prompt = build_system_prompt(PromptParams(case_type=case_type))

    assert f"CASE_TYPE: {case_type.value}" in prompt
    assert f"FRAMEWORK_OPTIONS: {', '.join(get_framework_options(case_type))}" in prompt
    assert f"CASE_GUIDANCE: {CASE_GUIDANCE_BY_TYPE[case_type]}" in prompt
    assert "{{" not in prompt


def test_finance_framework_options_are_rendered_in_order() -> None:
    prompt = build_system_prompt(PromptParams(case_type="Finance"))

    assert (
        "FRAMEWORK_OPTIONS: Profitability Tree, Unit Economics, ROIC, Break-even, Sensitivity Analysis"
        in prompt
    )


def test_missing_subject_and_session_render_not_specified() -> None:
    prompt = build_system_prompt(PromptParams(case_type=CaseType.MARKETING, subject="  ", session_id=None))

    assert "SUBJECT: Not specified" in prompt
    assert "SESSION_ID: Not specified" in prompt


def test_subject_and_session_are_rendered_verbatim() -> None:
    prompt = build_system_prompt(
        PromptParams(case_type=CaseType.OPERATIONS, subject="Operations Strategy", session_id="week-3-tue")
    )

    assert "SUBJECT: Operations Strategy" in prompt
    assert "SESSION_ID: week-3-tue" in prompt


@pytest.mark.parametrize("refinement", [None, "", "   "])
def test_blank_refinement_leaves_no_line_behind(refinement: str | None) -> None:
    prompt = build_system_prompt(PromptParams(case_type=CaseType.TECHNOLOGY, refinement=refinement))

    assert "REFINE_FOCUS" not in prompt
    assert "- SESSION_ID: Not specified\n\nRole:" in prompt


def test_refinement_adds_one_prefixed_directive_line() -> None:
    prompt = build_system_prompt(
        PromptParams(case_type=CaseType.FINANCE, refinement="Emphasise the debt covenants")
    )

    assert "- SESSION_ID: Not specified\n- REFINE_FOCUS: Emphasise the debt covenants\n\nRole:" in prompt
    assert prompt.count("REFINE_FOCUS") == 1


def test_prompt_is_deterministic() -> None:
    params = PromptParams(case_type=CaseType.BUSINESS_CASE, subject="Strategy", refinement="Focus on risk")

    assert build_system_prompt(params) == build_system_prompt(params)


def test_prompt_embeds_exact_output_contract() -> None:
    prompt = build_system_prompt(PromptParams(case_type=CaseType.GENERAL_STRATEGY))

    for heading in (
        "## 1) Situation & Tension (SCQ)",
        "## 2) Stakeholder Lenses",
        "## 3) Discussion Frameworks",
        "## 4) Classroom Discussion Prompts",
        "### Assumptions to Test",
    ):
        assert heading in prompt


def test_unknown_case_type_is_a_contract_violation() -> None:
    with pytest.raises(ValidationError):
        PromptParams(case_type="Astrology")
    with pytest.raises(ValueError):
        get_framework_options("Astrology")  # type: ignore[arg-type]


def test_format_repair_prompts_carry_invalid_text() -> None:
    user_prompt = build_format_repair_user_prompt("## 1) Situation & Tension (SCQ)\n- only one")

    assert user_prompt.endswith("SUMMARY TO REFORMAT:\n## 1) Situation & Tension (SCQ)\n- only one")
    assert "Do not add any new facts" in FORMAT_REPAIR_SYSTEM_PROMPT
