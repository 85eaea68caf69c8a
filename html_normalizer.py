"""
html_normalizer.py – Turn Azure DevOps rich-text fields into plain text.

Line-break and block-closing tags become newlines before any other tag is
removed, so paragraph and list structure survives as separate lines.
"""

from __future__ import annotations

import re

_BR_RE = re.compile(r"<br\s*/?>", re.IGNORECASE)
_BLOCK_CLOSE_RE = re.compile(r"</(?:p|div|li|tr|h[1-6])\s*>", re.IGNORECASE)
_TAG_RE = re.compile(r"<[^>]*?>")
_INLINE_SPACE_RE = re.compile(r"[^\S\n]+")
_BLANK_RUN_RE = re.compile(r"\n{3,}")


def _code_point(base: int):
    def convert(match: re.Match) -> str:
        try:
            return chr(int(match.group(1), base))
        except (ValueError, OverflowError):
            # Out-of-range code point; leave the reference untouched.
            return match.group(0)
    return convert


# Applied one after another, so ``&amp;lt;`` ends up as ``<``.
_ENTITY_STEPS = (
    (re.compile(r"&nbsp;", re.IGNORECASE), " "),
    (re.compile(r"&amp;", re.IGNORECASE), "&"),
    (re.compile(r"&lt;", re.IGNORECASE), "<"),
    (re.compile(r"&gt;", re.IGNORECASE), ">"),
    (re.compile(r"&quot;", re.IGNORECASE), '"'),
    (re.compile(r"&#(?:39|x27);", re.IGNORECASE), "'"),
    (re.compile(r"&#(\d+);"), _code_point(10)),
    (re.compile(r"&#x([0-9a-f]+);", re.IGNORECASE), _code_point(16)),
)


def decode_entities(text: str) -> str:
    """Decode the supported entity set, one entity kind at a time."""
    for pattern, replacement in _ENTITY_STEPS:
        text = pattern.sub(replacement, text)
    return text


def normalize(html: str | None) -> str:
    """Strip markup from *html* and return tidy plain text.

    Empty or ``None`` input returns ``""``; nothing here raises.
    """
    if not html:
        return ""

    text = _BR_RE.sub("\n", str(html))
    text = _BLOCK_CLOSE_RE.sub("\n", text)
    text = _TAG_RE.sub("", text)
    text = decode_entities(text)

    text = _INLINE_SPACE_RE.sub(" ", text)
    text = _BLANK_RUN_RE.sub("\n\n", text)
    text = "\n".join(line.strip() for line in text.split("\n"))
    # Trimming lines can leave fresh runs of blank lines behind.
    text = _BLANK_RUN_RE.sub("\n\n", text)
    return text.strip()
