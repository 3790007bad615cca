"""
Message block utilities.

Functions for grouping a flat message list into navigable blocks, building
block previews and working out which block sits under the scroll-spy line.
Image generation history gets the same treatment through
:func:`group_generations_into_blocks`.
"""

import logging
import re
from datetime import timedelta
from typing import Any, Iterable, List, Mapping, Optional, Union

from .models import (
    ASSISTANT_ROLE,
    SYSTEM_ROLE,
    USER_ROLE,
    GeneratedImage,
    GenerationBlock,
    GenerationParams,
    ImageGeneration,
    Message,
    MessageBlock,
    Rect,
    block_element_id,
)

logger = logging.getLogger(__name__)

PREVIEW_MAX_LENGTH = 80
ELLIPSIS = "…"
VIEWPORT_LINE_FRACTION = 1 / 3
GENERATION_BATCH_WINDOW = timedelta(seconds=30)
GENERATION_PREVIEW_LENGTH = 100

_WHITESPACE_RE = re.compile(r"\s+")


def load_message(message: Union[Message, Mapping[str, Any]], position: int) -> Message:
    """Validates one raw message, keyed by its position in the transcript.

    Raw messages without an ``id`` get ``msg-{position}`` and a missing
    ``timestamp`` stays ``None``, so loading the same data twice always
    yields equal messages (and therefore equal block ids).
    """
    if isinstance(message, Message):
        return message
    data = dict(message)
    if not data.get("id"):
        data["id"] = f"msg-{position}"
    data.setdefault("timestamp", None)
    return Message.model_validate(data)


def create_preview(content: str, max_length: int = PREVIEW_MAX_LENGTH) -> str:
    """Collapses whitespace and truncates at a word boundary where possible.

    The result is at most ``max_length`` characters plus a single ellipsis.
    """
    cleaned = _WHITESPACE_RE.sub(" ", content.strip())
    if len(cleaned) <= max_length:
        return cleaned

    truncated = cleaned[:max_length]
    last_space = truncated.rfind(" ")
    if last_space > 0 and last_space >= max_length * 0.5:
        return truncated[:last_space] + ELLIPSIS

    return truncated + ELLIPSIS


def block_id(index: int, user_message_id: str) -> str:
    return f"block-{index}-{user_message_id}"


def group_messages_into_blocks(
    messages: Iterable[Union[Message, Mapping[str, Any]]],
) -> List[MessageBlock]:
    """Groups messages into blocks of one user turn plus its reply.

    A user message claims the message right after it when that message is
    from the assistant. System messages are skipped. Any other message that
    was not claimed by a user message becomes a standalone block with no
    ``user_message``; standalone blocks are not numbered.
    """
    items = [
        load_message(message, position) for position, message in enumerate(messages)
    ]
    blocks: List[MessageBlock] = []
    block_index = 1
    i = 0

    while i < len(items):
        message = items[i]

        if message.role == SYSTEM_ROLE:
            i += 1
            continue

        if message.role == USER_ROLE:
            following = items[i + 1] if i + 1 < len(items) else None
            reply = following if following and following.role == ASSISTANT_ROLE else None
            blocks.append(
                MessageBlock(
                    id=block_id(block_index, message.id),
                    index=block_index,
                    user_message=message,
                    assistant_message=reply,
                    timestamp=message.timestamp,
                    preview=create_preview(message.content),
                )
            )
            block_index += 1
            i += 2 if reply else 1
            continue

        # Greeting or otherwise unclaimed response
        blocks.append(
            MessageBlock(
                id=f"block-standalone-{message.id}",
                assistant_message=message,
                timestamp=message.timestamp,
                preview=create_preview(message.content),
            )
        )
        i += 1

    logger.debug("Grouped %d messages into %d blocks", len(items), len(blocks))
    return blocks


def get_visible_block_id(
    blocks: List[MessageBlock],
    container: Optional[Rect],
    element_rects: Mapping[str, Rect],
) -> Optional[str]:
    """Returns the id of the block under the scroll-spy line.

    The line sits one third of the way down the container. ``element_rects``
    maps block element ids (``message-block-{id}``) to their measured boxes;
    blocks without a measurement are ignored.
    """
    if container is None or not blocks:
        return None

    line = container.top + container.height * VIEWPORT_LINE_FRACTION
    for block in blocks:
        rect = element_rects.get(block_element_id(block.id))
        if rect is None:
            continue
        if rect.top <= line and rect.bottom > container.top:
            return block.id

    return blocks[0].id


def _as_generation(generation: Union[ImageGeneration, Mapping[str, Any]]) -> ImageGeneration:
    if isinstance(generation, ImageGeneration):
        return generation
    return ImageGeneration.model_validate(generation)


def _generated_image(generation: ImageGeneration) -> GeneratedImage:
    return GeneratedImage(
        id=generation.id,
        url=generation.image_url,
        seed=generation.seed,
        prompt=generation.prompt,
        negative_prompt=generation.negative_prompt,
        width=generation.width,
        height=generation.height,
        steps=generation.steps,
        cfg_scale=generation.cfg_scale,
        created_at=generation.created_at,
    )


def group_generations_into_blocks(
    generations: Iterable[Union[ImageGeneration, Mapping[str, Any]]],
) -> List[GenerationBlock]:
    """Batches generations with the same prompt made within a short window.

    Generations are ordered by creation time first. A generation joins the
    current block when its prompt matches and it was created less than
    ``GENERATION_BATCH_WINDOW`` after the block started.
    """
    ordered = sorted(
        (_as_generation(generation) for generation in generations),
        key=lambda generation: generation.created_at,
    )
    blocks: List[GenerationBlock] = []
    current: Optional[GenerationBlock] = None

    for generation in ordered:
        if (
            current is not None
            and current.prompt == generation.prompt
            and abs(generation.created_at - current.timestamp) < GENERATION_BATCH_WINDOW
        ):
            current.images.append(_generated_image(generation))
            continue

        current = GenerationBlock(
            id=generation.id,
            index=len(blocks) + 1,
            prompt=generation.prompt,
            negative_prompt=generation.negative_prompt,
            images=[_generated_image(generation)],
            params=GenerationParams(
                prompt=generation.prompt,
                negative_prompt=generation.negative_prompt,
                width=generation.width,
                height=generation.height,
                steps=generation.steps,
                cfg_scale=generation.cfg_scale,
                seed=generation.seed,
            ),
            timestamp=generation.created_at,
            preview=generation.prompt[:GENERATION_PREVIEW_LENGTH],
        )
        blocks.append(current)

    logger.debug(
        "Grouped %d generations into %d blocks", len(ordered), len(blocks)
    )
    return blocks
