"""Shared text utility functions for the generation service."""

import re

_FENCE_OPEN = re.compile(r"^```[A-Za-z]*\s*\n?")
_FENCE_CLOSE = re.compile(r"\n?```\s*$")


def strip_markdown_code_blocks(text: str) -> str:
    """Strip markdown code fences from text.

    LLMs often wrap JSON responses in markdown code blocks like:
    ```json
    [...]
    ```

    A truncated response may have an opening fence and no closing one; the
    opening fence is still removed.

    Args:
        text: Raw text that may contain markdown code fences

    Returns:
        Text with the fences stripped, or the original text if none found
    """
    if not text:
        return text

    stripped = text.strip()
    if not stripped.startswith("```"):
        return text

    stripped = _FENCE_OPEN.sub("", stripped, count=1)
    stripped = _FENCE_CLOSE.sub("", stripped, count=1)
    return stripped.strip()


def collapse_newlines(text: str) -> str:
    """Replace every line break with a single space."""
    return re.sub(r"\r?\n", " ", text)
