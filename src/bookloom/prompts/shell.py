"""Prompt for the first-stage shell: title, outline and first section."""

from __future__ import annotations

from bookloom.models.classification import TopicCategory, TopicClassification

SHELL_SYSTEM_PROMPT = (
    "You are an expert book author and publisher. You design high-concept books and write "
    "their opening chapter. You MUST output ONLY raw JSON without markdown code fences."
)

_CATEGORY_VOICE = {
    TopicCategory.TECHNICAL: (
        "Write as a senior practitioner. Prefer precise terminology, named tools, "
        "step-by-step procedures and concrete specifications."
    ),
    TopicCategory.ACADEMIC: (
        "Write with academic authority and educational clarity. Use structured explanations, "
        "relevant background and an informative tone."
    ),
    TopicCategory.LIFESTYLE: (
        "Write with high taste and authority in a warm magazine style. Give specific names, "
        "prices and recommendations instead of generic advice."
    ),
}


def build_shell_prompt(
    *,
    topic: str,
    topic_title: str,
    classification: TopicClassification,
    language_name: str,
    section_count: int,
) -> str:
    chapters = ",\n".join(
        f'    {{"chapter_number": {i}, "title": "{_placeholder(i, section_count)}", "image_description": "..."}}'
        for i in range(1, section_count + 1)
    )
    image_rule = (
        "- Give every chapter a specific image_description (location, subject, lighting).\n"
        if classification.is_visual
        else "- image_description may be an empty string when no image adds value.\n"
    )
    return f"""Create a book outline and write Chapter 1 for the topic: "{topic}".

STRICT COVER METADATA RULES:
1. MAIN TITLE (max 4 words): punchy, evocative title.
2. SUBTITLE (max 8 words): intriguing and specific.

VOICE:
{_CATEGORY_VOICE[classification.category]}

OUTLINE RULES:
- Exactly {section_count} chapters, numbered 1..{section_count}.
{image_rule}
CHAPTER 1 REQUIREMENTS:
- Approximately 1,500 words of engaging markdown with ## and ### headings.
- Include at least one callout in the form [PRO-TIP: ...].

LANGUAGE: write every title and all content in {language_name}; keep proper nouns as they are.

Return ONLY valid JSON in this exact format:
{{
  "main_title": "...",
  "subtitle": "...",
  "topic_name": "{topic_title}",
  "chapters": [
{chapters}
  ],
  "chapter_1_content": "Full markdown content here...",
  "local_resources": []
}}"""


def _placeholder(i: int, total: int) -> str:
    if i == 1:
        return "Introduction"
    if i == total:
        return "Conclusion"
    return f"Chapter {i} Title"
