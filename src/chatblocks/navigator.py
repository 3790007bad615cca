"""Navigation behaviour shared by the UI callbacks."""

import logging
from datetime import datetime
from typing import Any, List, Mapping, Optional, Sequence, Tuple

from dash.development.base_component import Component as DashComponent
from pydantic import ValidationError

from .blocks import get_visible_block_id, group_messages_into_blocks, load_message
from .models import Message, MessageBlock, Rect, SearchResult
from .search import search_blocks

logger = logging.getLogger(__name__)

NAV_KEYS = ("ArrowDown", "ArrowUp", "Enter", "Escape")


class Navigator:
    """Turns the client-held message list into blocks, searches and jumps.

    The navigator holds no conversation state of its own: every method takes
    the raw message data the UI keeps in its ``messages_store``. It is bound
    to the app lazily so it can be constructed before the app exists.
    """

    def __init__(self, app=None):
        self.app = app

    def load_messages(self, data: Optional[Sequence[Any]]) -> List[Message]:
        """Validates raw store data, dropping entries that are not messages."""
        messages: List[Message] = []
        for position, item in enumerate(data or []):
            try:
                messages.append(load_message(item, position))
            except (TypeError, ValueError):
                logger.warning("Skipping invalid message at position %d", position)
        return messages

    def blocks_for(self, data: Optional[Sequence[Any]]) -> List[MessageBlock]:
        return group_messages_into_blocks(self.load_messages(data))

    def search(self, data: Optional[Sequence[Any]], query: Optional[str]) -> SearchResult:
        return search_blocks(self.blocks_for(data), query or "")

    def toggle(self, is_open: Optional[bool]) -> bool:
        return not is_open

    @staticmethod
    def move_selection(index: Optional[int], delta: int, count: int) -> int:
        """Moves the keyboard selection, clamped to the visible items."""
        if count <= 0:
            return 0
        current = index or 0
        return max(0, min(current + delta, count - 1))

    def handle_key(
        self,
        key: Optional[str],
        selection: Optional[int],
        data: Optional[Sequence[Any]],
        query: Optional[str],
    ) -> Tuple[int, Optional[str], bool]:
        """Applies a key press inside the navigation panel.

        Returns the new selection index, the block id to jump to (if any) and
        whether the panel should stay open.
        """
        blocks = self.search(data, query).blocks
        if key == "ArrowDown":
            return self.move_selection(selection, 1, len(blocks)), None, True
        if key == "ArrowUp":
            return self.move_selection(selection, -1, len(blocks)), None, True
        if key == "Enter":
            index = selection or 0
            if 0 <= index < len(blocks):
                return index, blocks[index].id, False
            return index, None, True
        if key == "Escape":
            return 0, None, False
        return selection or 0, None, True

    def resolve_active_block(
        self, data: Optional[Sequence[Any]], viewport: Optional[Mapping[str, Any]]
    ) -> Optional[str]:
        """Scroll spy over the element boxes measured in the browser.

        ``viewport`` is ``{"container": rect, "blocks": {element_id: rect}}``
        with each rect given as ``{"top", "bottom", "height"}``.
        """
        blocks = self.blocks_for(data)
        if not viewport or not viewport.get("container"):
            return get_visible_block_id(blocks, None, {})
        try:
            container = Rect.model_validate(viewport["container"])
            rects = {
                element_id: Rect.model_validate(rect)
                for element_id, rect in (viewport.get("blocks") or {}).items()
                if rect
            }
        except ValidationError:
            logger.warning("Ignoring malformed viewport measurement")
            return None
        return get_visible_block_id(blocks, container, rects)

    def build_messages(self, data: Optional[Sequence[Any]]) -> List[DashComponent]:
        return self.app.formatter.format_blocks(self.blocks_for(data))

    def build_navigation(
        self,
        data: Optional[Sequence[Any]],
        query: Optional[str],
        active_block_id: Optional[str] = None,
        selection: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> Tuple[List[DashComponent], str]:
        """Navigation list items and a short summary line for the panel."""
        blocks = self.blocks_for(data)
        result = search_blocks(blocks, query or "")
        items = self.app.formatter.format_navigation(
            result.blocks,
            result.matches,
            active_block_id=active_block_id,
            selected_index=selection,
            now=now,
        )
        if query and query.strip():
            summary = f"{len(result.blocks)} of {len(blocks)} messages"
        else:
            summary = f"{len(blocks)} messages"
        return items, summary
