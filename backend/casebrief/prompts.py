from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict


class CaseType(str, Enum):
    GENERAL_STRATEGY = "General Strategy"
    FINANCE = "Finance"
    MARKETING = "Marketing"
    TECHNOLOGY = "Technology"
    OPERATIONS = "Operations"
    BUSINESS_CASE = "Business Case"


FRAMEWORK_OPTIONS_BY_CASE_TYPE: dict[CaseType, tuple[str, ...]] = {
    CaseType.GENERAL_STRATEGY: ("SWOT", "Porter's 5 Forces", "PESTEL", "3Cs", "VRIO"),
    CaseType.FINANCE: ("Profitability Tree", "Unit Economics", "ROIC", "Break-even", "Sensitivity Analysis"),
    CaseType.MARKETING: ("4Ps", "Customer Journey Mapping", "STP", "Brand Positioning"),
    CaseType.TECHNOLOGY: ("Product-Market Fit", "Business Model Canvas", "North Star Metric", "RICE Prioritization"),
    CaseType.OPERATIONS: ("Process Mapping", "Bottleneck Analysis", "Capacity Utilization", "Service Blueprint"),
    CaseType.BUSINESS_CASE: ("SWOT", "Issue Tree", "Scenario Planning", "Risk Matrix", "3Cs"),
}

CASE_GUIDANCE_BY_TYPE: dict[CaseType, str] = {
    CaseType.GENERAL_STRATEGY: "Focus on strategic positioning, market forces, and organization-level trade-offs.",
    CaseType.FINANCE: (
        "Focus on profitability, capital allocation, risk-return trade-offs, and key financial assumptions."
    ),
    CaseType.MARKETING: (
        "Focus on target segment, positioning, channel strategy, pricing, and customer behavior evidence."
    ),
    CaseType.TECHNOLOGY: (
        "Focus on product feasibility, adoption drivers, platform risks, and technology execution constraints."
    ),
    CaseType.OPERATIONS: (
        "Focus on process efficiency, execution bottlenecks, capacity limits, and implementation sequencing."
    ),
    CaseType.BUSINESS_CASE: (
        "Balance strategic, financial, operational, and market angles to frame cross-functional trade-offs."
    ),
}

NOT_SPECIFIED = "Not specified"
REFINE_FOCUS_PLACEHOLDER = "{{REFINE_FOCUS_BLOCK}}"

SYSTEM_PROMPT_TEMPLATE = """Context (injected):
- CASE_TYPE: {{CASE_TYPE}}
- FRAMEWORK_OPTIONS: {{FRAMEWORK_OPTIONS}}
- CASE_GUIDANCE: {{CASE_GUIDANCE}}
- SUBJECT: {{SUBJECT}}
- SESSION_ID: {{SESSION_ID}}
{{REFINE_FOCUS_BLOCK}}

Role: You are a case discussion facilitator (not a solver). Help students prepare for class discussion using only the case text.
Policy: No final decision, no should-do X, no final plan.

Output format (Markdown, exact headings and counts):

## 1) Situation & Tension (SCQ)
### Situation
- Exactly 4 bullets grounded in the case.
### Complication
- Exactly 3 bullets on what changed or failed.
### Central Questions
- Exactly 3 bullets phrased as decision questions.

## 2) Stakeholder Lenses
### Leadership (CEO/CFO)
- What they care about + likely disagreement points.
### Operators/Employees
- What they care about + likely disagreement points.
### Customer/Market
- What they care about + likely disagreement points.

## 3) Discussion Frameworks
### Framework 1: <name from FRAMEWORK_OPTIONS>
- Exactly 5 evidence-based bullets.
### Framework 2: <name from FRAMEWORK_OPTIONS>
- Exactly 5 evidence-based bullets.

## 4) Classroom Discussion Prompts
### Debate Questions
1. Exactly 6 numbered questions total.
### Assumptions to Test
1. Exactly 3 numbered assumptions; each line must include "How to test: ...".
### Risks / Second-order Effects
- Exactly 3 bullets.
### Next Analyses
- Exactly 2 bullets describing what to analyze next.

Style constraints:
- Use only information present in the provided case text.
- Be specific with names, numbers, and constraints when present.
- Do not add new facts."""

FORMAT_REPAIR_SYSTEM_PROMPT = """Rewrite the provided summary into the exact required Markdown format and counts.
Do not add any new facts. Keep all content grounded in the original text.
No final decision, no should-do X.

Required headings:
## 1) Situation & Tension (SCQ)
## 2) Stakeholder Lenses
## 3) Discussion Frameworks
## 4) Classroom Discussion Prompts"""


class PromptParams(BaseModel):
    model_config = ConfigDict(frozen=True)

    case_type: CaseType
    subject: str | None = None
    session_id: str | None = None
    refinement: str | None = None


def get_framework_options(case_type: CaseType) -> list[str]:
    return list(FRAMEWORK_OPTIONS_BY_CASE_TYPE[CaseType(case_type)])


def _or_not_specified(value: str | None) -> str:
    cleaned = (value or "").strip()
    return cleaned or NOT_SPECIFIED


def build_system_prompt(params: PromptParams) -> str:
    case_type = CaseType(params.case_type)
    refinement = (params.refinement or "").strip()

    template = SYSTEM_PROMPT_TEMPLATE
    if not refinement:
        template = template.replace(f"{REFINE_FOCUS_PLACEHOLDER}\n", "")

    prompt = (
        template.replace("{{CASE_TYPE}}", case_type.value)
        .replace("{{FRAMEWORK_OPTIONS}}", ", ".join(get_framework_options(case_type)))
        .replace("{{CASE_GUIDANCE}}", CASE_GUIDANCE_BY_TYPE[case_type])
        .replace("{{SUBJECT}}", _or_not_specified(params.subject))
        .replace("{{SESSION_ID}}", _or_not_specified(params.session_id))
    )
    # Free-form user text goes in last so it is never scanned for placeholders.
    return prompt.replace(REFINE_FOCUS_PLACEHOLDER, f"- REFINE_FOCUS: {refinement}")


def build_user_message(case_text: str) -> str:
    return f"Prepare the class discussion brief for the following case text:\n\n{case_text}"


def build_format_repair_user_prompt(generated_summary: str) -> str:
    return (
        "Rewrite the summary below to match the strict format and counts exactly.\n"
        "Keep existing facts only; do not invent new data.\n\n"
        f"SUMMARY TO REFORMAT:\n{generated_summary}"
    )
