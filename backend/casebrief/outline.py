from __future__ import annotations

from dataclasses import dataclass, field, replace
import re
from typing import Callable, Iterable

HEADING_PATTERN = re.compile(r"^\s*(#{1,3})\s+(.*?)\s*$")
BULLET_PATTERN = re.compile(r"^\s*[-*]\s+")
NUMBERED_PATTERN = re.compile(r"^\s*\d+\.\s+")
FRAMEWORK_HEADING_PATTERN = re.compile(r"^framework \d+:", flags=re.IGNORECASE)
HOW_TO_TEST_PATTERN = re.compile(r"how to test:", flags=re.IGNORECASE)

SITUATION_HEADING = "## 1) Situation & Tension (SCQ)"
STAKEHOLDER_HEADING = "## 2) Stakeholder Lenses"
FRAMEWORKS_HEADING = "## 3) Discussion Frameworks"
PROMPTS_HEADING = "## 4) Classroom Discussion Prompts"
REQUIRED_SECTION_HEADINGS = (
    SITUATION_HEADING,
    STAKEHOLDER_HEADING,
    FRAMEWORKS_HEADING,
    PROMPTS_HEADING,
)

# (sub-heading, counter, expected count); counter is "bullets" or "numbered".
SITUATION_RULES = (
    ("### Situation", "bullets", 4),
    ("### Complication", "bullets", 3),
    ("### Central Questions", "bullets", 3),
)
STAKEHOLDER_SUBSECTIONS = (
    "### Leadership (CEO/CFO)",
    "### Operators/Employees",
    "### Customer/Market",
)
PROMPTS_RULES = (
    ("### Debate Questions", "numbered", 6),
    ("### Assumptions to Test", "numbered", 3),
    ("### Risks / Second-order Effects", "bullets", 3),
    ("### Next Analyses", "bullets", 2),
)
ASSUMPTIONS_HEADING = "### Assumptions to Test"
REQUIRED_FRAMEWORK_BLOCKS = 2
BULLETS_PER_FRAMEWORK = 5


@dataclass
class OutlineNode:
    """One heading of a parsed response and the lines that follow it.

    Level 2 nodes own level 3 children; ``lines`` holds only the body lines
    that sit directly under the heading, before its first child.
    """

    level: int
    title: str
    line_no: int
    lines: list[str] = field(default_factory=list)
    children: list["OutlineNode"] = field(default_factory=list)

    @property
    def key(self) -> str:
        return normalize_heading(self.title)


def normalize_heading(value: str) -> str:
    cleaned = value.strip().lstrip("#").strip()
    return " ".join(cleaned.split()).casefold()


def parse_outline(text: str) -> list[OutlineNode]:
    """Build the heading tree of ``text``.

    ``#`` and ``##`` headings open top-level nodes, ``###`` headings open
    children of the current top-level node. Lines before the first heading
    land in a level 0 preamble node so nothing is silently lost.
    """

    root = OutlineNode(level=0, title="", line_no=0)
    top_nodes: list[OutlineNode] = [root]
    current_top = root
    current = root

    for line_no, raw_line in enumerate(text.replace("\r\n", "\n").split("\n"), start=1):
        match = HEADING_PATTERN.match(raw_line)
        if match is None:
            current.lines.append(raw_line)
            continue

        level = len(match.group(1))
        title = match.group(2)
        if level <= 2:
            current_top = OutlineNode(level=level, title=title, line_no=line_no)
            top_nodes.append(current_top)
            current = current_top
            continue

        current = OutlineNode(level=level, title=title, line_no=line_no)
        current_top.children.append(current)

    return top_nodes


def count_bullets(lines: list[str]) -> int:
    return sum(1 for line in lines if BULLET_PATTERN.match(line))


def numbered_lines(lines: list[str]) -> list[str]:
    return [line.strip() for line in lines if NUMBERED_PATTERN.match(line)]


def _heading_line(node: OutlineNode) -> str:
    return f"{'#' * node.level} {node.title}"


def _absorb(block: OutlineNode, stray: OutlineNode) -> None:
    tail = block.children[-1] if block.children else block
    tail.lines.extend([_heading_line(stray), *stray.lines])
    block.children.extend(stray.children)


def fold_outline(
    nodes: list[OutlineNode],
    opens_block: Callable[[OutlineNode, list[OutlineNode]], bool],
) -> list[OutlineNode]:
    """Group sibling nodes into scoring blocks.

    A node for which ``opens_block`` holds starts a new block; any other node,
    heading line included, is appended to the end of the preceding block. A
    block therefore runs until the next recognised sibling, or to the end of
    its parent. The input tree is left untouched.
    """

    blocks: list[OutlineNode] = []
    for node in nodes:
        copy = OutlineNode(
            level=node.level,
            title=node.title,
            line_no=node.line_no,
            lines=list(node.lines),
            children=[replace(child, lines=list(child.lines)) for child in node.children],
        )
        if not blocks or opens_block(copy, blocks):
            blocks.append(copy)
        else:
            _absorb(blocks[-1], copy)
    return blocks


def _opens_named(headings: Iterable[str], *, level: int) -> Callable[[OutlineNode, list[OutlineNode]], bool]:
    wanted = {normalize_heading(heading) for heading in headings}

    def opens_block(node: OutlineNode, blocks: list[OutlineNode]) -> bool:
        # Only the first occurrence of a heading opens a block.
        return (
            node.level == level
            and node.key in wanted
            and all(block.key != node.key for block in blocks)
        )

    return opens_block


def _opens_framework(node: OutlineNode, blocks: list[OutlineNode]) -> bool:
    return bool(FRAMEWORK_HEADING_PATTERN.match(node.key))


def _first_by_key(nodes: list[OutlineNode], heading: str) -> OutlineNode | None:
    wanted = normalize_heading(heading)
    for node in nodes:
        if node.key == wanted:
            return node
    return None


def _count(lines: list[str], counter: str) -> int:
    if counter == "numbered":
        return len(numbered_lines(lines))
    return count_bullets(lines)


def _check_counted_subsections(
    section: OutlineNode,
    rules: tuple[tuple[str, str, int], ...],
) -> list[str]:
    blocks = fold_outline(section.children, _opens_named((heading for heading, _, _ in rules), level=3))
    issues: list[str] = []
    for heading, counter, expected in rules:
        node = _first_by_key(blocks, heading)
        if node is None:
            issues.append(f"missing sub-heading '{heading}' under '{section.title}'")
            continue
        found = _count(node.lines, counter)
        if found != expected:
            kind = "numbered items" if counter == "numbered" else "bullets"
            issues.append(f"'{heading}' has {found} {kind}, expected {expected}")
    return issues


def _check_stakeholders(section: OutlineNode) -> list[str]:
    blocks = fold_outline(section.children, _opens_named(STAKEHOLDER_SUBSECTIONS, level=3))
    issues: list[str] = []
    for heading in STAKEHOLDER_SUBSECTIONS:
        node = _first_by_key(blocks, heading)
        if node is None:
            issues.append(f"missing sub-heading '{heading}' under '{section.title}'")
        elif not any(line.strip() for line in node.lines):
            issues.append(f"'{heading}' is empty")
    return issues


def _check_frameworks(section: OutlineNode) -> list[str]:
    blocks = [
        block
        for block in fold_outline(section.children, _opens_framework)
        if FRAMEWORK_HEADING_PATTERN.match(block.key)
    ]
    if len(blocks) != REQUIRED_FRAMEWORK_BLOCKS:
        return [f"found {len(blocks)} framework blocks, expected {REQUIRED_FRAMEWORK_BLOCKS}"]

    issues: list[str] = []
    for block in blocks:
        found = count_bullets(block.lines)
        if found != BULLETS_PER_FRAMEWORK:
            issues.append(f"'{block.title}' has {found} bullets, expected {BULLETS_PER_FRAMEWORK}")
    return issues


def _check_assumptions(section: OutlineNode) -> list[str]:
    blocks = fold_outline(section.children, _opens_named((heading for heading, _, _ in PROMPTS_RULES), level=3))
    node = _first_by_key(blocks, ASSUMPTIONS_HEADING)
    if node is None:
        return []
    missing_marker = [line for line in numbered_lines(node.lines) if not HOW_TO_TEST_PATTERN.search(line)]
    if missing_marker:
        return [f"{len(missing_marker)} assumption(s) lack a 'How to test:' marker"]
    return []


def outline_issues(text: str) -> list[str]:
    """Return every structural violation of the case-brief outline contract.

    An empty list means the response satisfies the whole contract. Missing or
    misordered top-level headings short-circuit the check. Headings that are
    not part of the contract never end a section or sub-block; their lines
    count toward the block before them.
    """

    if not text or not text.strip():
        return ["response is empty"]

    top_blocks = fold_outline(parse_outline(text), _opens_named(REQUIRED_SECTION_HEADINGS, level=2))
    sections: list[OutlineNode] = []
    missing: list[str] = []
    for heading in REQUIRED_SECTION_HEADINGS:
        node = _first_by_key(top_blocks, heading)
        if node is None:
            missing.append(f"missing heading '{heading}'")
            continue
        sections.append(node)
    if missing:
        return missing

    positions = [node.line_no for node in sections]
    if positions != sorted(positions):
        return ["top-level headings are out of order"]

    situation, stakeholders, frameworks, prompts = sections
    issues: list[str] = []
    issues.extend(_check_counted_subsections(situation, SITUATION_RULES))
    issues.extend(_check_stakeholders(stakeholders))
    issues.extend(_check_frameworks(frameworks))
    issues.extend(_check_counted_subsections(prompts, PROMPTS_RULES))
    issues.extend(_check_assumptions(prompts))
    return issues


def is_valid_summary(text: str) -> bool:
    return not outline_issues(text)
