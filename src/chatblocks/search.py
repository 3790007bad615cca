"""
Search over message blocks and generation blocks.

Matching is deliberately simple: case-insensitive substring containment of
every whitespace-separated query token. Results keep the order of the input
blocks; nothing is ranked.
"""

import logging
from typing import Dict, List, Optional, Sequence, Tuple

from .models import (
    GenerationBlock,
    GenerationSearchMatch,
    HighlightRange,
    MessageBlock,
    SearchMatch,
    SearchResult,
)

logger = logging.getLogger(__name__)


def _tokens(query: str) -> List[str]:
    return query.lower().split()


def _fold(text: str) -> str:
    """Lowercases ``text`` without changing its length.

    Offsets found in the folded text are used to slice the original, so
    characters whose lowercase form is longer (``İ``) are left as they are.
    """
    lowered = text.lower()
    if len(lowered) == len(text):
        return lowered
    return "".join(
        char.lower() if len(char.lower()) == 1 else char for char in text
    )



def fuzzy_match(text: str, query: str) -> bool:
    """True when every query token occurs somewhere in ``text``.

    An empty or whitespace-only query matches everything.
    """
    if not query.strip():
        return True

    normalized = _fold(text)
    return all(token in normalized for token in _tokens(query))


def find_highlight_ranges(text: str, query: str) -> List[HighlightRange]:
    """Finds every occurrence of every query token and merges the spans.

    Ranges are sorted by start, and ranges that overlap or touch are
    coalesced, so the output never contains two overlapping spans.
    """
    if not query.strip():
        return []

    normalized = _fold(text)
    spans: List[Tuple[int, int]] = []
    for token in _tokens(query):
        start = normalized.find(token)
        while start != -1:
            spans.append((start, start + len(token)))
            start = normalized.find(token, start + 1)

    spans.sort()
    merged: List[List[int]] = []
    for start, end in spans:
        if merged and start <= merged[-1][1]:
            merged[-1][1] = max(merged[-1][1], end)
        else:
            merged.append([start, end])

    return [
        HighlightRange(start=start, end=end, text=text[start:end])
        for start, end in merged
    ]


def search_blocks(blocks: List[MessageBlock], query: str) -> SearchResult:
    """Filters blocks whose user or assistant text matches ``query``.

    Block order is preserved. Each retained block gets a :class:`SearchMatch`
    recording which side matched, with ranges over the user text in
    ``highlight_ranges`` and ranges over the assistant text in
    ``assistant_ranges``.
    """
    if not query.strip():
        return SearchResult(blocks=list(blocks), matches={})

    filtered: List[MessageBlock] = []
    matches: Dict[str, SearchMatch] = {}

    for block in blocks:
        user_text = block.user_message.content if block.user_message else None
        assistant_text = (
            block.assistant_message.content if block.assistant_message else None
        )
        user_match = user_text is not None and fuzzy_match(user_text, query)
        assistant_match = assistant_text is not None and fuzzy_match(
            assistant_text, query
        )
        if not (user_match or assistant_match):
            continue

        filtered.append(block)
        if user_match and assistant_match:
            matched_in = "both"
        elif user_match:
            matched_in = "user"
        else:
            matched_in = "assistant"

        matches[block.id] = SearchMatch(
            block_id=block.id,
            matched_in=matched_in,
            highlight_ranges=find_highlight_ranges(user_text, query) if user_match else [],
            assistant_ranges=(
                find_highlight_ranges(assistant_text, query) if assistant_match else []
            ),
        )

    logger.debug(
        "Search %r kept %d of %d blocks", query, len(filtered), len(blocks)
    )
    return SearchResult(blocks=filtered, matches=matches)


def ordered_fuzzy_match(text: str, query: str) -> Tuple[bool, List[HighlightRange]]:
    """Like :func:`fuzzy_match` but tokens must appear in query order.

    Each token is searched for after the end of the previous one, and the
    span of each hit is returned.
    """
    normalized = _fold(text)
    ranges: List[HighlightRange] = []
    position = 0

    for token in _tokens(query):
        start = normalized.find(token, position)
        if start == -1:
            return False, []
        end = start + len(token)
        ranges.append(HighlightRange(start=start, end=end, text=text[start:end]))
        position = end

    return True, ranges


def search_generation_blocks(
    blocks: List[GenerationBlock], query: str
) -> Tuple[List[GenerationBlock], Dict[str, GenerationSearchMatch]]:
    """Filters generation blocks by prompt or negative prompt."""
    if not query.strip():
        return list(blocks), {}

    filtered: List[GenerationBlock] = []
    matches: Dict[str, GenerationSearchMatch] = {}

    for block in blocks:
        prompt_match, ranges = ordered_fuzzy_match(block.prompt, query)
        negative_match = bool(block.negative_prompt) and ordered_fuzzy_match(
            block.negative_prompt, query
        )[0]
        if prompt_match or negative_match:
            filtered.append(block)
            matches[block.id] = GenerationSearchMatch(
                block_id=block.id, highlight_ranges=ranges
            )

    return filtered, matches


def preview_ranges(
    ranges: Sequence[HighlightRange], preview: str, limit: Optional[int] = None
) -> List[HighlightRange]:
    """Keeps the ranges that fall inside a truncated preview string."""
    limit = len(preview) if limit is None else limit
    return [r for r in ranges if r.start < limit and r.end <= len(preview)]


def split_highlights(
    text: str, ranges: Sequence[HighlightRange]
) -> List[Tuple[str, bool]]:
    """Cuts ``text`` into ``(fragment, is_highlight)`` pieces for rendering."""
    if not ranges:
        return [(text, False)] if text else []

    pieces: List[Tuple[str, bool]] = []
    position = 0
    for r in sorted(ranges, key=lambda r: r.start):
        start = max(r.start, position)
        if r.end <= start:
            continue
        if start > position:
            pieces.append((text[position:start], False))
        pieces.append((text[start : r.end], True))
        position = r.end

    if position < len(text):
        pieces.append((text[position:], False))
    return pieces
