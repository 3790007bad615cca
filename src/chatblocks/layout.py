"""Concrete implementations for layout builders."""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Set, Union

import dash_bootstrap_components as dbc
from dash import dcc, html
from dash.development.base_component import Component as DashComponent

REQUIRED_COMPONENT_IDS = (
    "messages_store",
    "messages_container",
    "nav_panel",
    "nav_toggle",
    "block_count",
    "nav_search",
    "nav_list",
    "nav_summary",
    "nav_key",
    "nav_selection",
    "active_block_store",
    "jump_target",
    "viewport_store",
)


def _collect_ids(component: Any, found: Set[str]) -> Set[str]:
    if isinstance(component, (list, tuple)):
        for child in component:
            _collect_ids(child, found)
        return found
    if not isinstance(component, DashComponent):
        return found

    component_id = getattr(component, "id", None)
    if isinstance(component_id, str):
        found.add(component_id)
    _collect_ids(getattr(component, "children", None), found)
    return found


class Layout(ABC):
    """Interface for building the Dash component layout.

    Subclasses must render every component id in ``REQUIRED_COMPONENT_IDS``;
    the callbacks are wired to them. The check runs on construction.
    """

    def __init__(self):
        self._validate_layout()

    @abstractmethod
    def build_layout(self, messages: Optional[List[Dict[str, Any]]] = None) -> DashComponent:
        """Constructs the entire component tree, seeding the message store."""
        pass

    def get_external_stylesheets(self) -> List[Union[str, Dict[str, str]]]:
        return []

    def get_external_scripts(self) -> List[Union[str, Dict[str, str]]]:
        return []

    def get_component_keys(self) -> Set[str]:
        return _collect_ids(self.build_layout(), set())

    def _validate_layout(self) -> None:
        present = self.get_component_keys()
        for component_id in REQUIRED_COMPONENT_IDS:
            if component_id not in present:
                raise ValueError(
                    f"Layout {type(self).__name__} is missing required component id "
                    f"'{component_id}'"
                )


class Bootstrap(Layout):
    """Builds the default chat layout with dash-bootstrap-components."""

    def get_external_stylesheets(self) -> List[Union[str, Dict[str, str]]]:
        return [dbc.themes.BOOTSTRAP]

    def build_layout(self, messages: Optional[List[Dict[str, Any]]] = None) -> DashComponent:
        return html.Div(
            className="d-flex flex-column vh-100",
            children=[
                dcc.Store(id="messages_store", data=messages or []),
                dcc.Store(id="active_block_store"),
                dcc.Store(id="jump_target"),
                dcc.Store(id="viewport_store"),
                dcc.Store(id="nav_key"),
                dcc.Store(id="nav_selection", data=0),
                self.build_header(),
                self.build_navigation_panel(),
                self.build_chat_area(),
            ],
        )

    def build_header(self) -> DashComponent:
        """Toolbar with the panel toggle, the block count and the shortcut hint."""
        toggle = dbc.Button(
            [html.Span("☰", className="me-2"), "Messages"],
            id="nav_toggle",
            n_clicks=0,
            color="secondary",
            outline=True,
            size="sm",
            title="Navigate messages (Ctrl+K)",
        )
        shortcut = html.Small(
            [html.Kbd("Ctrl"), "+", html.Kbd("K"), " to search"],
            className="text-muted d-none d-md-inline",
        )
        return html.Header(
            dbc.Stack(
                [
                    toggle,
                    dbc.Badge(id="block_count", color="light", text_color="dark"),
                    html.Div(shortcut, className="ms-auto"),
                ],
                direction="horizontal",
                gap=2,
            ),
            className="px-3 py-2 bg-light border-bottom",
        )

    def build_navigation_panel(self) -> DashComponent:
        return dbc.Offcanvas(
            id="nav_panel",
            is_open=False,
            title="Messages",
            children=[
                dbc.Input(
                    id="nav_search",
                    type="text",
                    placeholder="Search messages...",
                    value="",
                    className="mb-2",
                ),
                html.Div(id="nav_summary", className="small text-muted mb-2"),
                html.Div(id="nav_list", className="list-group"),
            ],
        )

    def build_chat_area(self) -> DashComponent:
        return html.Main(
            id="messages_container",
            className="flex-grow-1 p-3",
            style={"overflowY": "auto"},
        )
