"""
criterion_extractor.py – Split acceptance-criteria HTML into discrete criteria.

Extraction is a cascade of strategies tried in order; the first one that
yields anything wins:

  1. list items   (<li>…</li>, each longer than 3 characters)
  2. block split  (<div>, <p>, <br> boundaries, fragments longer than 5)
  3. whole blob   (the normalised field as one criterion, if longer than 5)

Every strategy is a pure function returning a list or ``None`` so that each
can be exercised on its own.
"""

from __future__ import annotations

import logging
import re
from typing import Callable, Optional

from html_normalizer import normalize
from models import Criterion

logger = logging.getLogger("pbi-analyzer")

Strategy = Callable[[str], Optional[list[str]]]

_LI_RE = re.compile(r"<li(?:\s[^>]*)?>(.*?)</li\s*>", re.IGNORECASE | re.DOTALL)
_BLOCK_CLOSE_RE = re.compile(r"</(?:div|p|br)\s*>", re.IGNORECASE)
_BLOCK_OPEN_RE = re.compile(r"<(?:div|p|br)\b[^>]*>", re.IGNORECASE)

MIN_LIST_ITEM_LENGTH = 3
MIN_FRAGMENT_LENGTH = 5


# ── Strategies ──────────────────────────────────────────────────────────

def from_list_items(html: str) -> Optional[list[str]]:
    items = [normalize(m.group(1)) for m in _LI_RE.finditer(html)]
    items = [item for item in items if len(item) > MIN_LIST_ITEM_LENGTH]
    return items or None


def from_blocks(html: str) -> Optional[list[str]]:
    split = _BLOCK_CLOSE_RE.sub("\n", html)
    split = _BLOCK_OPEN_RE.sub("\n", split)
    fragments = [normalize(line) for line in split.split("\n")]
    fragments = [f for f in fragments if len(f) > MIN_FRAGMENT_LENGTH]
    return fragments or None


def from_whole_text(html: str) -> Optional[list[str]]:
    single = normalize(html)
    if len(single) > MIN_FRAGMENT_LENGTH:
        return [single]
    return None


STRATEGIES: tuple[Strategy, ...] = (from_list_items, from_blocks, from_whole_text)


# ── Public API ──────────────────────────────────────────────────────────

def extract(html: str | None) -> list[str]:
    """Return the acceptance criteria found in *html* (possibly empty)."""
    if not html:
        return []
    for strategy in STRATEGIES:
        found = strategy(str(html))
        if found:
            logger.debug(
                "Criteria extracted by %s: %d item(s)", strategy.__name__, len(found)
            )
            return found
    return []


def extract_criteria(html: str | None) -> list[Criterion]:
    """Like :func:`extract` but numbered from 1."""
    return [Criterion(index=i, text=text) for i, text in enumerate(extract(html), 1)]


# ── Requirements from the description ───────────────────────────────────

REQUIREMENT_KEYWORDS = (
    "must", "should", "shall", "need to", "required to",
    "enable", "allow", "support", "provide", "implement",
)
MAX_REQUIREMENTS = 10

_LIST_LINE_RE = re.compile(r"^(?:\d+[.)]|[-*•])\s+(.+)$")
_SENTENCE_SPLIT_RE = re.compile(r"[.!?]+")


def extract_requirements(description_html: str | None) -> list[str]:
    """Mine requirement statements from a free-text description.

    Numbered or bulleted lines are preferred; without any, sentences that
    contain a requirement keyword are used instead.
    """
    text = normalize(description_html)
    if not text:
        return []

    requirements: list[str] = []
    for line in text.split("\n"):
        match = _LIST_LINE_RE.match(line)
        if not match:
            continue
        req = match.group(1).strip()
        if len(req) > 10 and req not in requirements:
            requirements.append(req)

    if not requirements:
        for sentence in _SENTENCE_SPLIT_RE.split(text.replace("\n", " ")):
            sentence = sentence.strip()
            lower = sentence.lower()
            if len(sentence) > 20 and any(kw in lower for kw in REQUIREMENT_KEYWORDS):
                requirements.append(sentence)

    return requirements[:MAX_REQUIREMENTS]
