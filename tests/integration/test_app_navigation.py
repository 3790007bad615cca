"""Integration tests for the app, navigator and formatter working together."""

from datetime import timedelta

import pytest
from chatblocks import Chatblocks
from chatblocks.models import ASSISTANT_ROLE, USER_ROLE, Message
from dash import html


def _store_data(app):
    """Returns the data the layout seeded into the message store."""
    return next(
        child.data
        for child in app.layout.children
        if getattr(child, "id", None) == "messages_store"
    )


class TestTranscriptRendering:
    """Test the seeded transcript flowing through to rendered blocks."""

    def test_seeded_store_renders_blocks(self, test_app):
        components = test_app.navigator.build_messages(_store_data(test_app))

        assert [c.id for c in components] == [
            "message-block-block-1-u1",
            "message-block-block-2-u2",
        ]

    def test_code_reply_renders_artifact(self, test_app):
        components = test_app.navigator.build_messages(_store_data(test_app))
        reply = components[1].children[1]

        artifact = reply.children[0]
        assert "artifact-code" in artifact.className
        assert artifact.id.startswith("artifact-")

    def test_appended_messages_extend_blocks(self, test_app):
        data = list(_store_data(test_app))
        data.append(Message(role=USER_ROLE, content="And images?").model_dump(mode="json"))

        components = test_app.navigator.build_messages(data)
        assert len(components) == 3
        # The trailing question has no reply yet
        assert len(components[2].children) == 1

    def test_navigation_targets_rendered_blocks_without_ids(self):
        """Test that items point at rendered blocks when messages carry no ids."""
        data = [
            {"role": "user", "content": "Hi"},
            {"role": "assistant", "content": "Hello"},
            {"role": "user", "content": "Again"},
        ]
        app = Chatblocks(messages=data)

        rendered = [c.id for c in app.navigator.build_messages(data)]
        items, _ = app.navigator.build_navigation(data, "")
        targets = ["message-block-" + item.id["id"] for item in items]
        assert targets == rendered

        _, jump, _ = app.navigator.handle_key("Enter", 1, data, "")
        assert "message-block-" + jump in rendered

    def test_seeded_ids_are_deterministic(self):
        data = [{"role": "user", "content": "Hi"}]
        first = _store_data(Chatblocks(messages=data))
        second = _store_data(Chatblocks(messages=data))

        assert first == second
        assert first[0]["id"] == "msg-0"
        assert first[0]["timestamp"] is None

    def test_empty_store(self, test_app):
        assert test_app.navigator.build_messages([]) == []


class TestNavigationFlow:
    """Test searching, selecting and jumping through the navigator."""

    @pytest.fixture
    def app(self, mixed_messages):
        return Chatblocks(messages=mixed_messages)

    def test_search_then_enter_jumps_to_match(self, app):
        data = _store_data(app)

        items, summary = app.navigator.build_navigation(data, "animal")
        assert summary == "1 of 5 messages"
        assert items[0].id["id"] == "block-1-u1"

        selection, target, keep_open = app.navigator.handle_key("Enter", 0, data, "animal")
        assert target == "block-1-u1"
        assert keep_open is False

    def test_arrow_navigation_across_filtered_items(self, app):
        data = _store_data(app)
        query = "an"

        total = len(app.navigator.search(data, query).blocks)
        selection = 0
        for _ in range(total + 2):
            selection, _, _ = app.navigator.handle_key("ArrowDown", selection, data, query)
        assert selection == total - 1

        items, _ = app.navigator.build_navigation(data, query, selection=selection)
        assert "border-primary" in items[-1].className

    def test_scroll_spy_marks_active_item(self, app, base_time):
        data = _store_data(app)
        viewport = {
            "container": {"top": 0, "bottom": 900, "height": 900},
            "blocks": {
                "message-block-block-standalone-g": {"top": -500, "bottom": -300},
                "message-block-block-1-u1": {"top": -300, "bottom": 100},
                "message-block-block-2-u2": {"top": 100, "bottom": 400},
            },
        }

        active = app.navigator.resolve_active_block(data, viewport)
        assert active == "block-1-u1"

        items, _ = app.navigator.build_navigation(
            data, "", active_block_id=active, now=base_time + timedelta(days=1)
        )
        active_items = [item for item in items if " active" in item.className]
        assert [item.id["id"] for item in active_items] == ["block-1-u1"]

    def test_greeting_is_navigable(self, app):
        items, _ = app.navigator.build_navigation(_store_data(app), "")
        assert items[0].id["id"] == "block-standalone-g"


class TestCallbackRegistration:
    """Test that the app wires its callbacks on construction."""

    def test_server_callbacks_registered(self, test_app):
        outputs = " ".join(test_app.callback_map.keys())

        for output in (
            "messages_container.children",
            "block_count.children",
            "nav_list.children",
            "nav_summary.children",
            "nav_panel.is_open",
            "active_block_store.data",
        ):
            assert output in outputs

    def test_custom_layout_missing_ids_fails_fast(self):
        from chatblocks.layout import Layout

        class Bare(Layout):
            def build_layout(self, messages=None):
                return html.Div(id="only")

        with pytest.raises(ValueError):
            Chatblocks(layout=Bare())
