"""
Keyword localization and highlight management.

This module turns keyword suggestions into highlight ranges on a live
document and applies them through the document owner:
1. Locate whole-word matches of each keyword in the document's text nodes
2. Translate node-local indexes into flattened document offsets
3. Clear all existing highlights, re-scan, then apply each new range

Localization is never incremental. Every pass discards the previous
ranges and recomputes them from the current document.
"""

import asyncio
import logging
import re
from dataclasses import dataclass, field
from typing import Iterable, Optional, Protocol, Union

from .models import ContentBlock, ContentBlockType, HighlightRange, KeywordSuggestion, TextNode

logger = logging.getLogger(__name__)

NON_WORD_PATTERN = re.compile(r"\W")

KeywordInput = Union[KeywordSuggestion, dict]


@dataclass
class DocumentSnapshot:
    """Text nodes of the live document and its total size."""
    text_nodes: list[TextNode]
    size: int


class DocumentSurface(Protocol):
    """
    The editor-side owner of the document.

    The analyzer never writes to the document directly; it requests these
    operations and awaits each one.
    """

    async def clear_highlights(self) -> None:
        ...

    async def snapshot(self) -> DocumentSnapshot:
        ...

    async def apply_highlight(self, highlight: HighlightRange) -> None:
        ...

    async def set_selection(self, position: int) -> None:
        ...


def _lower_aligned(text: str) -> str:
    # Keep one character per position so offsets stay aligned.
    return "".join(c.lower() if len(c.lower()) == 1 else c for c in text)


def _is_boundary(char: str) -> bool:
    return bool(NON_WORD_PATTERN.match(char))


def _keyword_fields(keyword: KeywordInput) -> tuple[str, str, str]:
    """Extract (word, suggestion, reason) from a suggestion or a plain dict."""
    if isinstance(keyword, KeywordSuggestion):
        return keyword.word, keyword.suggestion or "", keyword.reason
    word = keyword.get("word") or ""
    suggestion = keyword.get("suggestion")
    if suggestion is None and keyword.get("suggestions"):
        suggestion = keyword["suggestions"][0]
    return str(word), str(suggestion or ""), str(keyword.get("reason") or "")


def find_whole_word_matches(text: str, term: str) -> list[int]:
    """
    Indexes of whole-word occurrences of term in text, case-insensitive.

    The scan restarts one character past each found index so adjacent and
    repeated occurrences are not skipped. A match must be flanked by non-word
    characters or by the string edges.
    """
    haystack = _lower_aligned(text)
    needle = _lower_aligned(term.strip())
    if not needle:
        return []

    matches: list[int] = []
    search_from = 0
    while True:
        found = haystack.find(needle, search_from)
        if found == -1:
            break

        end = found + len(needle)
        before = haystack[found - 1] if found > 0 else " "
        after = haystack[end] if end < len(haystack) else " "
        if _is_boundary(before) and _is_boundary(after):
            matches.append(found)

        search_from = found + 1
    return matches


def localize(
    text_nodes: Iterable[TextNode],
    document_length: int,
    keywords: Iterable[KeywordInput],
) -> list[HighlightRange]:
    """
    Compute highlight ranges for keywords in a document.

    Args:
        text_nodes: Text-bearing leaves with their starting offsets.
        document_length: Size of the document coordinate space.
        keywords: Suggestions (or dicts with word/suggestion/reason).

    Returns:
        One HighlightRange per valid whole-word match, keyword order first.
    """
    nodes = list(text_nodes)
    ranges: list[HighlightRange] = []
    seen_spans: set[tuple[int, int]] = set()
    used_ids: set[str] = set()

    for keyword_index, keyword in enumerate(keywords):
        word, suggestion, reason = _keyword_fields(keyword)
        term = word.strip()
        if not term:
            continue

        for node_index, node in enumerate(nodes):
            for local_index in find_whole_word_matches(node.text, term):
                from_pos = node.offset + local_index
                to_pos = from_pos + len(term)

                if not (0 <= from_pos < to_pos <= document_length):
                    logger.debug(
                        f"Dropping out-of-range highlight for '{term}': {from_pos}-{to_pos} "
                        f"(document length {document_length})"
                    )
                    continue

                if (from_pos, to_pos) in seen_spans:
                    continue
                seen_spans.add((from_pos, to_pos))

                range_id = f"keyword-{keyword_index}-{local_index}"
                if range_id in used_ids:
                    range_id = f"{range_id}-{node_index}"
                used_ids.add(range_id)

                ranges.append(HighlightRange(
                    id=range_id,
                    from_pos=from_pos,
                    to_pos=to_pos,
                    source_word=word,
                    suggestion=suggestion,
                    reason=reason,
                ))

    return ranges


class HighlightManager:
    """
    Applies keyword highlights to a document surface.

    A refresh runs clear-all, re-scan and apply-each strictly in order, then
    moves the selection to the start of the document. Refreshes are
    serialized; a refresh superseded by a newer one stops applying marks.
    """

    def __init__(self) -> None:
        self._generation = 0
        self._lock = asyncio.Lock()
        self._keywords: list[KeywordInput] = []
        self.active_ranges: list[HighlightRange] = []

    @property
    def keywords(self) -> list[KeywordInput]:
        return list(self._keywords)

    async def refresh(
        self,
        surface: DocumentSurface,
        keywords: Optional[Iterable[KeywordInput]] = None,
    ) -> list[HighlightRange]:
        """
        Recompute and apply all highlights.

        Args:
            surface: The document owner.
            keywords: New keyword list. None reuses the last one.

        Returns:
            The ranges applied by this pass (empty if it was superseded).
        """
        if keywords is not None:
            self._keywords = list(keywords)
        keyword_list = list(self._keywords)

        self._generation += 1
        generation = self._generation

        async with self._lock:
            if generation != self._generation:
                return []

            # Ranges are only valid against a document without stale marks.
            await surface.clear_highlights()
            self.active_ranges = []

            snapshot = await surface.snapshot()
            ranges = localize(snapshot.text_nodes, snapshot.size, keyword_list)

            applied: list[HighlightRange] = []
            for highlight in ranges:
                if generation != self._generation:
                    logger.info("Highlight pass superseded by a newer request")
                    return applied
                await surface.apply_highlight(highlight)
                applied.append(highlight)

            await surface.set_selection(0)
            self.active_ranges = applied
            logger.info(f"Applied {len(applied)} highlights for {len(keyword_list)} keywords")
            return applied

    async def on_document_changed(self, surface: DocumentSurface) -> list[HighlightRange]:
        """Re-localize the current keywords after an edit."""
        return await self.refresh(surface)

    async def on_keywords_changed(
        self,
        surface: DocumentSurface,
        keywords: Iterable[KeywordInput],
    ) -> list[HighlightRange]:
        """Re-localize after a new analysis produced a new keyword list."""
        return await self.refresh(surface, keywords)

    async def clear(self, surface: DocumentSurface) -> None:
        """Remove every highlight and forget the keyword list."""
        self._generation += 1
        async with self._lock:
            await surface.clear_highlights()
            self._keywords = []
            self.active_ranges = []


# ---------------------------------------------------------------------------
# In-memory document surface
# ---------------------------------------------------------------------------


def text_nodes_from_blocks(blocks: Iterable[ContentBlock]) -> tuple[list[TextNode], int]:
    """
    Lay blocks out in editor position space.

    Every block opens one position before its text and closes one after it.
    List blocks hold one item per line, each item wrapping a paragraph.

    Returns:
        (text nodes, document size)
    """
    nodes: list[TextNode] = []
    pos = 0

    for block in blocks:
        if block.type == ContentBlockType.LIST:
            pos += 1  # list open
            for item in block.content.split("\n"):
                pos += 2  # list item + paragraph open
                if item:
                    nodes.append(TextNode(text=item, offset=pos))
                pos += len(item) + 2  # text + paragraph/list item close
            pos += 1  # list close
        else:
            pos += 1
            if block.content:
                nodes.append(TextNode(text=block.content, offset=pos))
            pos += len(block.content) + 1

    return nodes, pos


@dataclass
class InMemoryDocument:
    """
    A DocumentSurface over a block list.

    Marked text is reported as separate text nodes, the way a rich-text
    editor splits text at mark boundaries.
    """
    blocks: list[ContentBlock] = field(default_factory=list)
    marks: list[HighlightRange] = field(default_factory=list)
    selection: tuple[int, int] = (0, 0)
    operations: list[str] = field(default_factory=list)

    @property
    def size(self) -> int:
        return text_nodes_from_blocks(self.blocks)[1]

    def replace_blocks(self, blocks: list[ContentBlock]) -> None:
        """Simulate an edit. Existing marks are left in place until cleared."""
        self.blocks = list(blocks)
        self.operations.append("edit")

    def text_between(self, from_pos: int, to_pos: int) -> str:
        """Text covered by a position range."""
        nodes, _ = text_nodes_from_blocks(self.blocks)
        parts: list[str] = []
        for node in nodes:
            start = max(from_pos, node.offset)
            end = min(to_pos, node.offset + len(node.text))
            if start < end:
                parts.append(node.text[start - node.offset:end - node.offset])
        return "".join(parts)

    async def clear_highlights(self) -> None:
        self.marks = []
        self.operations.append("clear")

    async def snapshot(self) -> DocumentSnapshot:
        nodes, size = text_nodes_from_blocks(self.blocks)
        self.operations.append("snapshot")
        return DocumentSnapshot(text_nodes=self._split_at_marks(nodes), size=size)

    async def apply_highlight(self, highlight: HighlightRange) -> None:
        if not (0 <= highlight.from_pos < highlight.to_pos <= self.size):
            raise ValueError(f"Highlight out of range: {highlight.from_pos}-{highlight.to_pos}")
        self.marks.append(highlight)
        self.operations.append("apply")

    async def set_selection(self, position: int) -> None:
        self.selection = (position, position)
        self.operations.append("select")

    def _split_at_marks(self, nodes: list[TextNode]) -> list[TextNode]:
        boundaries = sorted({m.from_pos for m in self.marks} | {m.to_pos for m in self.marks})
        if not boundaries:
            return nodes

        result: list[TextNode] = []
        for node in nodes:
            end = node.offset + len(node.text)
            cuts = [b for b in boundaries if node.offset < b < end]
            start = node.offset
            for cut in cuts + [end]:
                result.append(TextNode(
                    text=node.text[start - node.offset:cut - node.offset],
                    offset=start,
                ))
                start = cut
        return result
