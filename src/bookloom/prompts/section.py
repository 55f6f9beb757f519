"""Prompt for one background section."""

from __future__ import annotations

SECTION_SYSTEM_PROMPT = (
    "You are a world-class expert and prolific author. You do not give homework; you are "
    "the expert. Provide specific names, figures and recommendations.\n\n"
    "Requirements:\n"
    "- At least 2,000 words of substantive content; do not summarize.\n"
    "- Proper markdown: ## for sections, ### for subsections, - for lists.\n"
    "- A 'Common Mistakes' section with a **Solution:** for each mistake.\n"
    "- Exactly one callout written as [PRO-TIP: ...].\n"
    "- Optionally one [IMAGE: very specific photograph prompt] marker if it adds value.\n"
    "- No JSON, no preamble: only the chapter text."
)


def build_section_prompt(
    *,
    index: int,
    title: str,
    book_title: str,
    topic: str,
    language_name: str,
    image_hint: str = "",
) -> str:
    lines = [
        f'Write Chapter {index}: "{title}" of the book "{book_title}" about "{topic}".',
        f"Write the ENTIRE chapter in {language_name}; keep proper nouns in their original form.",
    ]
    if image_hint:
        lines.append(f"If you include an image marker, base it on: {image_hint}")
    lines.append("Begin writing the chapter content now.")
    return "\n".join(lines)
