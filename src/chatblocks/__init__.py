"""
The main entrypoint for the chatblocks package.

This module contains the Chatblocks Dash application, which wires the message
block, search and artifact pillars into a navigable chat transcript view. The
pure functions behind it are re-exported here for use without a UI.
"""

from typing import Any, Dict, List, Optional, Union

from dash import Dash

from . import artifacts, formatters, layout, navigator
from .artifacts import parse_message_for_artifacts
from .blocks import (
    create_preview,
    get_visible_block_id,
    group_generations_into_blocks,
    group_messages_into_blocks,
    load_message,
)
from .models import Message
from .search import find_highlight_ranges, fuzzy_match, search_blocks

__all__ = [
    "Chatblocks",
    "create_preview",
    "find_highlight_ranges",
    "fuzzy_match",
    "get_visible_block_id",
    "group_generations_into_blocks",
    "group_messages_into_blocks",
    "parse_message_for_artifacts",
    "search_blocks",
]


class Chatblocks(Dash):
    """
    A Dash application that renders a chat transcript as navigable blocks.

    The message list is owned by the caller. It is seeded into the
    ``messages_store`` component and every view (blocks, navigation panel,
    scroll spy) is recomputed from that store whenever it changes.
    """

    def __init__(
        self,
        layout: Optional["layout.Layout"] = None,
        parser: Optional[artifacts.Parser] = None,
        formatter: Optional[formatters.Formatter] = None,
        navigator: Optional["navigator.Navigator"] = None,
        messages: Optional[List[Union[Message, Dict[str, Any]]]] = None,
        **kwargs,
    ) -> None:
        """
        Initialize the application with configurable pillars.

        Parameters
        ----------
        layout : layout.Layout, optional
            Layout builder for the Dash component tree. Defaults to
            layout.Bootstrap().
        parser : artifacts.Parser, optional
            Artifact parser used when rendering assistant messages. Defaults
            to artifacts.Regex().
        formatter : formatters.Formatter, optional
            Converts blocks and navigation entries into Dash components.
            Defaults to formatters.Default() using ``parser``.
        navigator : navigator.Navigator, optional
            Navigation behaviour the callbacks delegate to. An unbound
            instance is bound to this app.
        messages : list of Message or dict, optional
            Initial transcript to seed the message store with.
        **kwargs
            Additional arguments passed to the Dash constructor.

        Raises
        ------
        ValueError
            If the layout is missing required component IDs.

        Examples
        --------
        >>> app = Chatblocks(messages=[{"role": "user", "content": "Hi"}])
        """
        layout_module = globals()["layout"]
        navigator_module = globals()["navigator"]

        self.layout_builder = layout if layout is not None else layout_module.Bootstrap()

        if "external_stylesheets" not in kwargs:
            kwargs["external_stylesheets"] = []
        kwargs["external_stylesheets"].extend(
            self.layout_builder.get_external_stylesheets()
        )

        if "external_scripts" not in kwargs:
            kwargs["external_scripts"] = []
        kwargs["external_scripts"].extend(self.layout_builder.get_external_scripts())

        super().__init__(**kwargs)

        self.parser = parser if parser is not None else artifacts.Regex()
        self.formatter = (
            formatter if formatter is not None else formatters.Default(parser=self.parser)
        )
        self.navigator = (
            navigator if navigator is not None else navigator_module.Navigator()
        )
        if getattr(self.navigator, "app", None) is None:
            self.navigator.app = self

        self.layout = self.layout_builder.build_layout(
            messages=self._serialize_messages(messages)
        )
        self._register_callbacks()

    @staticmethod
    def _serialize_messages(
        messages: Optional[List[Union[Message, Dict[str, Any]]]],
    ) -> List[Dict[str, Any]]:
        return [
            load_message(message, position).model_dump(mode="json")
            for position, message in enumerate(messages or [])
        ]

    def _register_callbacks(self) -> None:
        """Registers all the callbacks that orchestrate the pillars."""
        from .callbacks import register_callbacks

        register_callbacks(self)
