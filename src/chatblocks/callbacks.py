"""Callback wiring between the layout components and the navigator."""

import logging

from dash import ALL, Input, Output, State, callback_context, no_update

from .formatters import format_block_count
from .navigator import NAV_KEYS

logger = logging.getLogger(__name__)

HIGHLIGHT_DURATION_MS = 2000


def register_callbacks(app):
    @app.callback(
        [
            Output("messages_container", "children"),
            Output("block_count", "children"),
        ],
        [Input("messages_store", "data")],
    )
    def render_messages(messages):
        try:
            components = app.navigator.build_messages(messages)
            return components, format_block_count(len(components))
        except Exception:
            logger.exception("Failed to render message blocks")
            return [], no_update

    @app.callback(
        [
            Output("nav_list", "children"),
            Output("nav_summary", "children"),
        ],
        [
            Input("messages_store", "data"),
            Input("nav_search", "value"),
            Input("active_block_store", "data"),
            Input("nav_selection", "data"),
        ],
    )
    def render_navigation(messages, query, active_block_id, selection):
        try:
            return app.navigator.build_navigation(
                messages, query, active_block_id=active_block_id, selection=selection
            )
        except Exception:
            logger.exception("Failed to render navigation panel")
            return [], ""

    @app.callback(
        Output("nav_panel", "is_open"),
        [Input("nav_toggle", "n_clicks")],
        [State("nav_panel", "is_open")],
        prevent_initial_call=True,
    )
    def toggle_navigation(n_clicks, is_open):
        if not n_clicks:
            return no_update
        return app.navigator.toggle(is_open)

    @app.callback(
        Output("nav_selection", "data", allow_duplicate=True),
        [Input("nav_search", "value")],
        prevent_initial_call=True,
    )
    def reset_selection(query):
        return 0

    @app.callback(
        [
            Output("jump_target", "data", allow_duplicate=True),
            Output("nav_panel", "is_open", allow_duplicate=True),
        ],
        [Input({"type": "nav-item", "id": ALL}, "n_clicks")],
        prevent_initial_call=True,
    )
    def jump_to_block(n_clicks):
        if not n_clicks or not any(n_clicks):
            return no_update, no_update
        try:
            block_id = callback_context.triggered_id["id"]
            return block_id, False
        except Exception:
            logger.exception("Could not resolve the clicked navigation item")
            return no_update, no_update

    @app.callback(
        [
            Output("nav_selection", "data", allow_duplicate=True),
            Output("jump_target", "data", allow_duplicate=True),
            Output("nav_panel", "is_open", allow_duplicate=True),
        ],
        [Input("nav_key", "data")],
        [
            State("nav_selection", "data"),
            State("messages_store", "data"),
            State("nav_search", "value"),
        ],
        prevent_initial_call=True,
    )
    def handle_nav_key(key_event, selection, messages, query):
        if not key_event or key_event.get("key") not in NAV_KEYS:
            return no_update, no_update, no_update
        try:
            selection, target, keep_open = app.navigator.handle_key(
                key_event["key"], selection, messages, query
            )
            return selection, target if target else no_update, keep_open
        except Exception:
            logger.exception("Failed to handle navigation key %r", key_event)
            return no_update, no_update, no_update

    @app.callback(
        Output("active_block_store", "data"),
        [Input("viewport_store", "data")],
        [State("messages_store", "data")],
        prevent_initial_call=True,
    )
    def track_active_block(viewport, messages):
        try:
            return app.navigator.resolve_active_block(messages, viewport)
        except Exception:
            logger.exception("Failed to resolve the visible block")
            return no_update

    _register_clientside_callbacks(app)


def _register_clientside_callbacks(app):
    # Scroll to the jump target and flash a highlight around it
    app.clientside_callback(
        """
        function(blockId) {
            if (!blockId) {
                return window.dash_clientside.no_update;
            }
            const element = document.getElementById('message-block-' + blockId);
            if (element) {
                element.scrollIntoView({behavior: 'smooth', block: 'start'});
                const classes = ['border', 'border-primary', 'rounded'];
                element.classList.add(...classes);
                clearTimeout(window.chatblocksHighlightTimer);
                window.chatblocksHighlightTimer = setTimeout(function() {
                    element.classList.remove(...classes);
                }, %d);
            }
            return window.dash_clientside.no_update;
        }
        """
        % HIGHLIGHT_DURATION_MS,
        Output("messages_container", "data-jump", allow_duplicate=True),
        [Input("jump_target", "data")],
        prevent_initial_call=True,
    )

    # Keyboard shortcuts: Ctrl/Cmd+K toggles the panel, arrows/Enter/Escape
    # inside the search box drive the selection
    app.clientside_callback(
        """
        function(toggleId) {
            if (!window.chatblocksKeysSetup) {
                window.chatblocksKeysSetup = true;
                document.addEventListener('keydown', function(e) {
                    if ((e.metaKey || e.ctrlKey) && e.key === 'k') {
                        e.preventDefault();
                        const toggle = document.getElementById(toggleId);
                        if (toggle) {
                            toggle.click();
                        }
                        return;
                    }
                    const navKeys = ['ArrowDown', 'ArrowUp', 'Enter', 'Escape'];
                    if (e.target && e.target.id === 'nav_search' && navKeys.includes(e.key)) {
                        e.preventDefault();
                        window.dash_clientside.set_props('nav_key', {
                            data: {key: e.key, ts: Date.now()}
                        });
                    }
                });
            }
            return window.dash_clientside.no_update;
        }
        """,
        Output("messages_container", "data-keys", allow_duplicate=True),
        [Input("nav_toggle", "id")],
        prevent_initial_call="initial_duplicate",
    )

    # Scroll spy: measure block boxes on scroll and after every re-render
    app.clientside_callback(
        """
        function(children) {
            const container = document.getElementById('messages_container');
            if (!container) {
                return window.dash_clientside.no_update;
            }
            const measure = function() {
                const box = container.getBoundingClientRect();
                const blocks = {};
                container.querySelectorAll('[id^="message-block-"]').forEach(function(el) {
                    const rect = el.getBoundingClientRect();
                    blocks[el.id] = {top: rect.top, bottom: rect.bottom, height: rect.height};
                });
                window.dash_clientside.set_props('viewport_store', {
                    data: {
                        container: {top: box.top, bottom: box.bottom, height: box.height},
                        blocks: blocks
                    }
                });
            };
            if (!window.chatblocksScrollSpySetup) {
                window.chatblocksScrollSpySetup = true;
                let ticking = false;
                container.addEventListener('scroll', function() {
                    if (!ticking) {
                        ticking = true;
                        requestAnimationFrame(function() {
                            measure();
                            ticking = false;
                        });
                    }
                }, {passive: true});
            }
            setTimeout(measure, 100);
            return window.dash_clientside.no_update;
        }
        """,
        Output("messages_container", "data-spy", allow_duplicate=True),
        [Input("messages_container", "children")],
        prevent_initial_call="initial_duplicate",
    )
