"""
Tests for the core Pydantic data models.

Messages are the only input the package trusts, so their validation behavior
decides what the grouping and search functions ever get to see.
"""

from datetime import datetime

import pytest
from chatblocks.models import (
    ASSISTANT_ROLE,
    SYSTEM_ROLE,
    TOOL_ROLE,
    USER_ROLE,
    Artifact,
    GenerationParams,
    ImageGeneration,
    Message,
    MessageBlock,
    Rect,
    block_element_id,
    generation_element_id,
)
from pydantic import ValidationError


class TestMessage:
    """Test Message model validation and behavior."""

    def test_valid_message_creation(self):
        """Test creating messages for each known role."""
        for role in (USER_ROLE, ASSISTANT_ROLE, SYSTEM_ROLE, TOOL_ROLE):
            msg = Message(role=role, content="text")
            assert msg.role == role
            assert msg.content == "text"

    def test_defaults(self):
        """Test that id and timestamp are generated when omitted."""
        msg = Message(role=USER_ROLE)

        assert msg.content == ""
        assert msg.id
        assert isinstance(msg.timestamp, datetime)
        assert msg.timestamp.tzinfo is not None
        assert msg.files == []
        assert msg.is_streaming is False
        assert msg.error is None

    def test_ids_are_unique(self):
        ids = {Message(role=USER_ROLE).id for _ in range(20)}
        assert len(ids) == 20

    def test_unknown_role_is_accepted(self):
        """Test that unexpected roles validate rather than fail."""
        msg = Message(role="function", content="{}")
        assert msg.role == "function"

    def test_role_is_required(self):
        with pytest.raises(ValidationError):
            Message(content="no role")

    def test_message_is_frozen(self):
        """Test that messages cannot be modified after creation."""
        msg = Message(role=USER_ROLE, content="Original")
        with pytest.raises(ValidationError):
            msg.content = "Changed"

    def test_json_round_trip(self):
        """Test that the JSON held in the message store validates back."""
        msg = Message(role=ASSISTANT_ROLE, content="Hi", error="timeout")
        restored = Message.model_validate(msg.model_dump(mode="json"))
        assert restored == msg

    def test_attachments(self):
        msg = Message(
            role=USER_ROLE,
            content="see attached",
            files=[{"name": "notes.txt", "type": "text/plain", "size": 12}],
        )
        assert msg.files[0].name == "notes.txt"
        assert msg.files[0].id


class TestMessageBlock:
    """Test MessageBlock helpers."""

    def test_element_id(self):
        block = MessageBlock(id="block-1-u1", index=1)
        assert block.element_id == "message-block-block-1-u1"
        assert block.element_id == block_element_id(block.id)

    def test_standalone(self):
        reply = Message(role=ASSISTANT_ROLE, content="Welcome")
        standalone = MessageBlock(id="block-standalone-x", assistant_message=reply)
        paired = MessageBlock(
            id="block-1-u",
            index=1,
            user_message=Message(role=USER_ROLE, content="Hi"),
            assistant_message=reply,
        )

        assert standalone.is_standalone
        assert standalone.index is None
        assert not paired.is_standalone


class TestArtifact:
    """Test Artifact validation."""

    def test_known_types(self):
        for kind in ("code", "markdown", "image", "pdf", "docx", "text", "diagram"):
            assert Artifact(id="a", type=kind, content="x").type == kind

    def test_unknown_type_is_rejected(self):
        with pytest.raises(ValidationError):
            Artifact(id="a", type="video", content="x")


class TestGenerationModels:
    """Test the image generation models."""

    def test_params_defaults(self):
        params = GenerationParams()

        assert params.steps == 30
        assert params.cfg_scale == 7.5
        assert (params.width, params.height) == (512, 512)
        assert params.batch_count == 1
        assert "blurry" in params.negative_prompt

    def test_generation_requires_prompt_and_url(self):
        with pytest.raises(ValidationError):
            ImageGeneration(prompt="a cat")
        with pytest.raises(ValidationError):
            ImageGeneration(image_url="a.png")

    def test_generation_element_id(self):
        assert generation_element_id("gen-1") == "generation-block-gen-1"


class TestRect:
    def test_height_defaults_to_zero(self):
        rect = Rect(top=10, bottom=20)
        assert rect.height == 0.0

    def test_validates_from_browser_payload(self):
        rect = Rect.model_validate({"top": 1.5, "bottom": 30, "height": 28.5})
        assert rect.top == 1.5
