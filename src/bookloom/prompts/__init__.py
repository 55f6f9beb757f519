from __future__ import annotations

from bookloom.prompts.safety import SAFETY_SYSTEM_PROMPT, build_safety_prompt
from bookloom.prompts.section import SECTION_SYSTEM_PROMPT, build_section_prompt
from bookloom.prompts.shell import SHELL_SYSTEM_PROMPT, build_shell_prompt

__all__ = [
    "SAFETY_SYSTEM_PROMPT",
    "SECTION_SYSTEM_PROMPT",
    "SHELL_SYSTEM_PROMPT",
    "build_safety_prompt",
    "build_section_prompt",
    "build_shell_prompt",
]
