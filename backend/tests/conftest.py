from __future__ import annotations

import pytest

VALID_BRIEF = """## 1) Situation & Tension (SCQ)
### Situation
- Fact 1
- Fact 2
- Fact 3
- Fact 4
### Complication
- Complication 1
- Complication 2
- Complication 3
### Central Questions
- Question 1?
- Question 2?
- Question 3?

## 2) Stakeholder Lenses
### Leadership (CEO/CFO)
- Leadership view and disagreement.
### Operators/Employees
- Operator view and disagreement.
### Customer/Market
- Market view and disagreement.

## 3) Discussion Frameworks
### Framework 1: Profitability Tree
- P1
- P2
- P3
- P4
- P5
### Framework 2: Unit Economics
- U1
- U2
- U3
- U4
- U5

## 4) Classroom Discussion Prompts
### Debate Questions
1. Q1?
2. Q2?
3. Q3?
4. Q4?
5. Q5?
6. Q6?
### Assumptions to Test
1. Assumption A. How to test: use data A.
2. Assumption B. How to test: use data B.
3. Assumption C. How to test: use data C.
### Risks / Second-order Effects
- Risk 1
- Risk 2
- Risk 3
### Next Analyses
- Analysis 1
- Analysis 2"""

CASE_TEXT = (
    "Northwind Outfitters is a regional retailer of outdoor equipment with 42 stores. "
    "Margins fell from 11% to 6% over three years while online competitors undercut prices. "
    "The CFO proposes closing twelve stores; the head of retail wants to invest in services instead. "
    "Inventory turns dropped to 3.1 and the company carries 40 million in revolving debt. "
) * 2


class RecordingGenerator:
    """Fake text generator that replays scripted replies and records every call."""

    def __init__(self, *replies: object) -> None:
        self._replies = list(replies)
        self.calls: list[dict[str, str]] = []

    async def complete(self, system_instruction: str, user_message: str) -> str:
        self.calls.append({"system": system_instruction, "user": user_message})
        if not self._replies:
            raise AssertionError("unexpected generation call")
        reply = self._replies.pop(0)
        if isinstance(reply, BaseException):
            raise reply
        return str(reply)


@pytest.fixture
def valid_brief() -> str:
    return VALID_BRIEF


@pytest.fixture
def case_text() -> str:
    return CASE_TEXT
