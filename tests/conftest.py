"""
Core pytest configuration and fixtures for chatblocks testing.

This module provides shared test data (messages, blocks, generations) and the
app fixture used by the integration tests.
"""

from datetime import datetime, timedelta, timezone
from typing import Dict, List

import pytest
from chatblocks.models import (
    ASSISTANT_ROLE,
    SYSTEM_ROLE,
    USER_ROLE,
    ImageGeneration,
    Message,
)

BASE_TIME = datetime(2026, 2, 14, 9, 30, tzinfo=timezone.utc)

# ===== TEST DATA FIXTURES =====


@pytest.fixture
def base_time() -> datetime:
    return BASE_TIME


@pytest.fixture
def sample_messages() -> List[Message]:
    """Two complete user/assistant turns."""
    return [
        Message(id="u1", role=USER_ROLE, content="Hi", timestamp=BASE_TIME),
        Message(
            id="a1",
            role=ASSISTANT_ROLE,
            content="Hello!",
            timestamp=BASE_TIME + timedelta(seconds=5),
        ),
        Message(
            id="u2",
            role=USER_ROLE,
            content="Show code",
            timestamp=BASE_TIME + timedelta(minutes=1),
        ),
        Message(
            id="a2",
            role=ASSISTANT_ROLE,
            content="```py\nprint(1)\n```",
            timestamp=BASE_TIME + timedelta(minutes=1, seconds=5),
        ),
    ]


@pytest.fixture
def messages_data(sample_messages) -> List[Dict]:
    """The sample messages as the JSON the message store holds."""
    return [msg.model_dump(mode="json") for msg in sample_messages]


@pytest.fixture
def mixed_messages() -> List[Message]:
    """A transcript with a greeting, a system prompt and an unanswered question."""
    return [
        Message(id="g", role=ASSISTANT_ROLE, content="Welcome! Ask me anything."),
        Message(id="s", role=SYSTEM_ROLE, content="You are helpful."),
        Message(id="u1", role=USER_ROLE, content="What is a quick brown fox?"),
        Message(id="a1", role=ASSISTANT_ROLE, content="An animal that jumps."),
        Message(id="u2", role=USER_ROLE, content="And the lazy dog?"),
        Message(id="u3", role=USER_ROLE, content="Hello?"),
        Message(id="a3", role=ASSISTANT_ROLE, content="Sorry, here I am."),
        Message(id="a4", role=ASSISTANT_ROLE, content="Anything else?"),
    ]


@pytest.fixture
def sample_generations() -> List[ImageGeneration]:
    """Three generations: a two-image batch followed by a different prompt."""
    return [
        ImageGeneration(
            id="gen-3",
            prompt="a red fox in snow",
            image_url="https://img.example/3.png",
            created_at=BASE_TIME + timedelta(minutes=5),
        ),
        ImageGeneration(
            id="gen-1",
            prompt="a lighthouse at dusk",
            negative_prompt="blurry",
            image_url="https://img.example/1.png",
            created_at=BASE_TIME,
        ),
        ImageGeneration(
            id="gen-2",
            prompt="a lighthouse at dusk",
            negative_prompt="blurry",
            image_url="https://img.example/2.png",
            created_at=BASE_TIME + timedelta(seconds=10),
        ),
    ]


# ===== APP FIXTURES =====


@pytest.fixture
def test_app(sample_messages):
    """A Chatblocks app seeded with the sample transcript."""
    from chatblocks import Chatblocks

    return Chatblocks(messages=sample_messages)


# ===== CONFIGURATION =====


def pytest_configure(config):
    """Pytest configuration."""
    config.addinivalue_line("markers", "integration: marks tests as integration tests")
    config.addinivalue_line("markers", "slow: marks tests as slow-running")


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on location."""
    for item in items:
        if "integration" in str(item.fspath):
            item.add_marker(pytest.mark.integration)
