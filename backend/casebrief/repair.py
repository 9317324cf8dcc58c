from __future__ import annotations

from dataclasses import dataclass
import logging

from casebrief.generation import GenerationError, TextGenerator
from casebrief.outline import is_valid_summary, outline_issues
from casebrief.prompts import FORMAT_REPAIR_SYSTEM_PROMPT, build_format_repair_user_prompt

logger = logging.getLogger("casebrief.repair")

NO_SUMMARY_MESSAGE = "No summary generated."


@dataclass(frozen=True)
class BriefResult:
    summary: str
    repaired: bool
    calls: int
    # None when no repair call was made.
    repaired_valid: bool | None = None


async def repair_summary(generator: TextGenerator, invalid_text: str) -> str:
    """Ask the generator to reformat ``invalid_text`` into the outline contract.

    One call only; whatever comes back is returned without validation.
    """

    repaired = await generator.complete(
        FORMAT_REPAIR_SYSTEM_PROMPT,
        build_format_repair_user_prompt(invalid_text),
    )
    return (repaired or "").strip()


async def generate_with_repair(
    generator: TextGenerator,
    system_prompt: str,
    user_message: str,
) -> BriefResult:
    first = ((await generator.complete(system_prompt, user_message)) or "").strip()
    if not first:
        raise GenerationError(NO_SUMMARY_MESSAGE)

    if is_valid_summary(first):
        return BriefResult(summary=first, repaired=False, calls=1)

    logger.info(
        "summary_format_invalid",
        extra={"event": "summary_format_invalid", "issues": outline_issues(first)[:5]},
    )
    repaired = await repair_summary(generator, first)
    if not repaired:
        raise GenerationError(NO_SUMMARY_MESSAGE)

    repaired_valid = is_valid_summary(repaired)
    if not repaired_valid:
        logger.warning(
            "summary_repair_accepted_unvalidated",
            extra={"event": "summary_repair_accepted_unvalidated", "response_chars": len(repaired)},
        )
    return BriefResult(summary=repaired, repaired=True, calls=2, repaired_valid=repaired_valid)
