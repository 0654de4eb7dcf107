"""Colour-coded emphasis spans used inside slide text.

``*text*`` marks a legal doctrine or principle (gold), ``~text~`` a
violation or offence (red) and ``_text_`` a statutory provision (blue).
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from functools import lru_cache
from typing import Iterable, List, Tuple


class Tone(str, Enum):
    PLAIN = "plain"
    GOLD = "gold"
    RED = "red"
    BLUE = "blue"


_MARKERS = {"*": Tone.GOLD, "~": Tone.RED, "_": Tone.BLUE}

# A span opens on a marker that is not glued to a preceding word character,
# so snake_case identifiers and arithmetic stars are left alone.
_SPAN_RE = re.compile(r"(?<![\w*~])([*~_])([^*~_\n]+?)\1(?![\w])")


@dataclass(frozen=True, slots=True)
class Span:
    tone: Tone
    text: str


@lru_cache(maxsize=4096)
def parse_spans(text: str) -> Tuple[Span, ...]:
    """Split ``text`` into plain and coloured spans, in order."""
    if not text:
        return ()

    spans: List[Span] = []
    cursor = 0
    for match in _SPAN_RE.finditer(text):
        if match.start() > cursor:
            spans.append(Span(Tone.PLAIN, text[cursor : match.start()]))
        spans.append(Span(_MARKERS[match.group(1)], match.group(2)))
        cursor = match.end()
    if cursor < len(text):
        spans.append(Span(Tone.PLAIN, text[cursor:]))
    return tuple(spans)


def coloured(spans: Iterable[Span], tone: Tone) -> List[str]:
    return [span.text for span in spans if span.tone is tone]


def strip_markup(text: str) -> str:
    """Return ``text`` with every emphasis marker removed."""
    return "".join(span.text for span in parse_spans(text))


def has_markup(text: str) -> bool:
    return any(span.tone is not Tone.PLAIN for span in parse_spans(text))
