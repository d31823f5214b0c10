"""Fenced code block extraction.

Assistant replies usually wrap code in markdown fences; before the code is
handed to the editor the fences are stripped and the result trimmed.
"""

import re

# Opening fence with an optional language tag, plus the newline that ends it.
_OPENING_FENCE = re.compile(r"```\w*\n?")
_FENCE = "```"


def extract_code(text: str) -> str:
    """Return ``text`` without triple-backtick fences and surrounding whitespace.

    Only the fence markers are removed; everything between them is kept as-is.
    Text without fences comes back trimmed.
    """

    cleaned = _OPENING_FENCE.sub("", text or "")
    # removing a fence can join stray backticks into a new one
    while _FENCE in cleaned:
        cleaned = cleaned.replace(_FENCE, "")
    return cleaned.strip()
