"""
Defines the core Pydantic data models for the application.

Messages are the only authoritative input. Every other model here (blocks,
artifacts, search matches) is derived from a message list on demand and is
never stored.
"""

import uuid
from datetime import datetime, timezone
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

# --- Constants ---
USER_ROLE = "user"
ASSISTANT_ROLE = "assistant"
SYSTEM_ROLE = "system"
TOOL_ROLE = "tool"

ArtifactType = Literal["code", "markdown", "image", "pdf", "docx", "text", "diagram"]
MatchedIn = Literal["user", "assistant", "both"]


def block_element_id(block_id: str) -> str:
    """DOM id of the container rendered for a message block."""
    return f"message-block-{block_id}"


def generation_element_id(block_id: str) -> str:
    """DOM id of the card rendered for a generation block."""
    return f"generation-block-{block_id}"


# --- Messages ---
class FileAttachment(BaseModel):
    """A file the user attached to a message."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    name: str
    type: str = ""
    size: int = 0
    content: str = ""
    preview: Optional[str] = None


class Message(BaseModel):
    """A single chat message.

    ``role`` is deliberately a plain string: anything other than ``user`` is
    treated as "not user" when grouping, so unknown roles never fail
    validation.
    """

    model_config = ConfigDict(frozen=True)

    role: str
    content: str = ""
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    timestamp: Optional[datetime] = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )
    files: List[FileAttachment] = Field(default_factory=list)
    is_streaming: bool = False
    error: Optional[str] = None


class MessageBlock(BaseModel):
    """One user turn and the assistant response that immediately follows it."""

    id: str
    index: Optional[int] = None
    user_message: Optional[Message] = None
    assistant_message: Optional[Message] = None
    timestamp: Optional[datetime] = None
    preview: str = ""

    @property
    def element_id(self) -> str:
        return block_element_id(self.id)

    @property
    def is_standalone(self) -> bool:
        return self.user_message is None


# --- Artifacts ---
class Artifact(BaseModel):
    """A typed piece of content extracted from a chat message."""

    model_config = ConfigDict(frozen=True)

    id: str
    type: ArtifactType
    content: str
    language: Optional[str] = None
    filename: Optional[str] = None
    title: Optional[str] = None
    mime_type: Optional[str] = None


class TextSegment(BaseModel):
    text: str
    index: int


class ParsedMessage(BaseModel):
    """Result of running a message through an artifact parser."""

    text_segments: List[TextSegment] = Field(default_factory=list)
    artifacts: List[Artifact] = Field(default_factory=list)


# --- Search ---
class HighlightRange(BaseModel):
    """A half-open ``[start, end)`` span of the searched text."""

    start: int
    end: int
    text: str


class SearchMatch(BaseModel):
    block_id: str
    matched_in: MatchedIn
    highlight_ranges: List[HighlightRange] = Field(default_factory=list)
    assistant_ranges: List[HighlightRange] = Field(default_factory=list)


class SearchResult(BaseModel):
    blocks: List[MessageBlock] = Field(default_factory=list)
    matches: Dict[str, SearchMatch] = Field(default_factory=dict)


# --- Image generation ---
class GenerationParams(BaseModel):
    """Parameters of a single image generation request."""

    prompt: str = ""
    negative_prompt: Optional[str] = (
        "blurry, bad quality, distorted, ugly, nsfw, watermark, text"
    )
    steps: int = 30
    cfg_scale: float = 7.5
    seed: Optional[int] = None
    width: int = 512
    height: int = 512
    batch_count: int = 1


class ImageGeneration(BaseModel):
    """One generated image as recorded in the generation history."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    prompt: str
    negative_prompt: Optional[str] = None
    image_url: str
    model_used: str = ""
    seed: int = 0
    width: int = 512
    height: int = 512
    steps: int = 30
    cfg_scale: float = 7.5
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class GeneratedImage(BaseModel):
    id: str
    url: str
    seed: int
    prompt: str
    negative_prompt: Optional[str] = None
    width: int
    height: int
    steps: int
    cfg_scale: float
    created_at: datetime


class GenerationBlock(BaseModel):
    """A batch of images produced by the same prompt in quick succession."""

    id: str
    index: int
    prompt: str
    negative_prompt: Optional[str] = None
    images: List[GeneratedImage] = Field(default_factory=list)
    params: GenerationParams
    timestamp: datetime
    preview: str = ""

    @property
    def element_id(self) -> str:
        return generation_element_id(self.id)


class GenerationSearchMatch(BaseModel):
    block_id: str
    highlight_ranges: List[HighlightRange] = Field(default_factory=list)


# --- Geometry ---
class Rect(BaseModel):
    """The measured bounding box of a DOM element, in viewport pixels."""

    top: float
    bottom: float
    height: float = 0.0
