"""Corrective instruction for the single regeneration.

The regeneration is a fresh, standalone attempt. Continuation-style fixes
produce visible seams in the delivered text, so the instruction forbids any
reference to the rejected attempt and the rejected text is never resent.
"""

from __future__ import annotations

from core.domain.categories import RejectionReason, Variant
from core.interfaces.generator import PromptMessages


def build_corrective_instruction(rejection_reason: str, variant: Variant) -> str:
    if variant is Variant.EXTENDED:
        shape = (
            "Generate a COMPLETE, long, slow bedtime-style story of 40 to 50 sentences, with a clear "
            "beginning, a rich detailed middle, and a warm, peaceful ending. Do NOT cut it short."
        )
    else:
        shape = (
            "Generate a complete reply that fully satisfies the RESPONSE TYPE rules above. "
            "If it is a story, tell the whole story (beginning, middle, and a warm ending) in 7 to 8 sentences."
        )

    wording = ""
    if rejection_reason == RejectionReason.FORBIDDEN_CONTENT.value:
        wording = (
            "Never say the user already asked or was already told something. "
            "Do not use medical or clinical words, and do not mention dates, schedules or appointments.\n"
        )

    return (
        f"The reply could not be used. Reason: {rejection_reason}.\n"
        "Write a brand-new, standalone reply from scratch. "
        f"{shape}\n"
        f"{wording}"
        "Do NOT refer to, continue, or apologise for any previous attempt. "
        "Do NOT offer to continue or ask if they want more. "
        "End with a complete sentence."
    )


def corrected_messages(
    messages: PromptMessages,
    rejection_reason: str,
    variant: Variant,
) -> list[dict[str, str]]:
    """Original prompt plus the corrective system message; nothing else."""

    return [
        *(dict(message) for message in messages),
        {"role": "system", "content": build_corrective_instruction(rejection_reason, variant)},
    ]
