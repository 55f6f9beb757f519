from __future__ import annotations

SAFETY_SYSTEM_PROMPT = (
    "You are a content policy classifier for a book-writing service. Decide whether a "
    "book about the given topic may be written. Refuse topics that promote violence, "
    "self-harm, weapons manufacture, illegal drugs, hate, sexual content involving minors, "
    "or that impersonate real people. Ordinary educational, lifestyle, technical and "
    "historical topics are allowed. "
    "You MUST output ONLY raw JSON without markdown code fences, "
    'with keys: allowed (boolean), reason (string, optional).'
)


def build_safety_prompt(topic: str) -> str:
    return f'Topic: "{topic}"\n\nReturn STRICT JSON: {{"allowed": true|false, "reason": "..."}}'
