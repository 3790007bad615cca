"""Concrete implementations for artifact parsers."""

import logging
import re
import time
import uuid
from abc import ABC, abstractmethod
from typing import List, Optional, Tuple, Union

from .models import Artifact, ParsedMessage, TextSegment

logger = logging.getLogger(__name__)

INLINE_CODE_MAX_LINES = 10

LANGUAGE_ALIASES = {
    "js": "javascript",
    "ts": "typescript",
    "tsx": "typescript",
    "jsx": "javascript",
    "py": "python",
    "rb": "ruby",
    "sh": "bash",
    "shell": "bash",
    "yml": "yaml",
    "md": "markdown",
}

MIME_EXTENSIONS = {
    "application/pdf": "pdf",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document": "docx",
    "application/msword": "doc",
    "text/plain": "txt",
    "text/markdown": "md",
    "image/png": "png",
    "image/jpeg": "jpg",
    "image/gif": "gif",
    "image/webp": "webp",
    "image/svg+xml": "svg",
}

CODE_BLOCK_RE = re.compile(r"```([A-Za-z0-9_]+)?\n([\s\S]*?)```")
FILENAME_RE = re.compile(
    r"^(?://|#|/\*)\s*(?:file:?\s*)?([a-zA-Z0-9_.-]+\.[a-zA-Z0-9]+)", re.IGNORECASE
)
MARKDOWN_IMAGE_RE = re.compile(r"!\[([^\]]*)\]\(([^)]+)\)")
BASE64_IMAGE_RE = re.compile(r"(data:image/[a-z+]+;base64,[A-Za-z0-9+/=]+)")
DATA_MIME_RE = re.compile(r"data:([^;]+)")
PLACEHOLDER_RE = re.compile(r"\[\[ARTIFACT:([^\]]+)\]\]")

# Same artifact boundaries as the parser, without capture groups, for splitting
# the message text when rendering.
ARTIFACT_BOUNDARY_RE = re.compile(
    r"```[\s\S]*?```|!\[[^\]]*\]\([^)]+\)|data:image/[a-z+]+;base64,[A-Za-z0-9+/=]+"
)


def generate_id(prefix: str = "artifact") -> str:
    """Returns an id that is unique within a render session."""
    return f"{prefix}-{int(time.time() * 1000)}-{uuid.uuid4().hex[:9]}"


def normalize_language(language: str) -> str:
    lower = language.lower().strip()
    return LANGUAGE_ALIASES.get(lower, lower)


def _placeholder(artifact_id: str) -> str:
    return f"\n[[ARTIFACT:{artifact_id}]]\n"


def _data_mime_type(url: str) -> Optional[str]:
    match = DATA_MIME_RE.match(url)
    return match.group(1) if match else None


class Parser(ABC):
    """Interface for extracting artifacts from message content."""

    @abstractmethod
    def parse(self, content: str) -> ParsedMessage:
        """Splits message content into text segments and typed artifacts."""
        pass


class Regex(Parser):
    """Regular-expression based parser for code fences and images.

    Code blocks are extracted first and replaced with placeholders, then
    images are extracted from what is left. Artifacts are therefore ordered
    code first, images second, regardless of where they appeared in the
    message text. Use :func:`interleave` to recover positional order.
    """

    def parse(self, content: str) -> ParsedMessage:
        if not content:
            return ParsedMessage()

        code_blocks, remaining = self.extract_code_blocks(content)
        images, remaining = self.extract_images(remaining)
        artifacts = code_blocks + images

        artifact_ids = {artifact.id for artifact in artifacts}
        text_segments = []
        for index, part in enumerate(PLACEHOLDER_RE.split(remaining)):
            segment = part.strip()
            if segment and segment not in artifact_ids:
                text_segments.append(TextSegment(text=segment, index=index))

        logger.debug(
            "Parsed %d characters into %d text segments and %d artifacts",
            len(content),
            len(text_segments),
            len(artifacts),
        )
        return ParsedMessage(text_segments=text_segments, artifacts=artifacts)

    def extract_code_blocks(self, content: str) -> Tuple[List[Artifact], str]:
        blocks: List[Artifact] = []
        remaining = content

        for match in CODE_BLOCK_RE.finditer(content):
            tag, body = match.group(1), match.group(2)
            code = body.strip()
            if not code:
                continue

            language = normalize_language(tag) if tag else "plaintext"
            filename = None
            first_line = code.split("\n", 1)[0]
            filename_match = FILENAME_RE.match(first_line)
            if filename_match:
                filename = filename_match.group(1)

            artifact = Artifact(
                id=generate_id(),
                type="code",
                content=code,
                language=language,
                filename=filename,
                title=filename or f"{language} code",
            )
            blocks.append(artifact)
            remaining = remaining.replace(match.group(0), _placeholder(artifact.id), 1)

        return blocks, remaining

    def extract_images(self, content: str) -> Tuple[List[Artifact], str]:
        images: List[Artifact] = []
        remaining = content

        for match in MARKDOWN_IMAGE_RE.finditer(content):
            alt, url = match.group(1), match.group(2)
            artifact = Artifact(
                id=generate_id(),
                type="image",
                content=url,
                title=alt or "Image",
                mime_type=_data_mime_type(url) if url.startswith("data:") else None,
            )
            images.append(artifact)
            remaining = remaining.replace(match.group(0), _placeholder(artifact.id), 1)

        for match in BASE64_IMAGE_RE.finditer(remaining):
            data_uri = match.group(1)
            if any(image.content == data_uri for image in images):
                continue

            artifact = Artifact(
                id=generate_id(),
                type="image",
                content=data_uri,
                title="Generated Image",
                mime_type=_data_mime_type(data_uri),
            )
            images.append(artifact)
            remaining = remaining.replace(data_uri, _placeholder(artifact.id), 1)

        return images, remaining


_default_parser = Regex()


def parse_message_for_artifacts(content: str) -> ParsedMessage:
    """Parses ``content`` with the default :class:`Regex` parser."""
    return _default_parser.parse(content)


def interleave(content: str, artifacts: List[Artifact]) -> List[Union[str, Artifact]]:
    """Orders text and artifacts the way they appear in ``content``.

    Parsers return code blocks before images, and markdown images before
    bare data URIs, so artifact order says little about position. A fence
    boundary takes the next code artifact; an image boundary takes the first
    unused image artifact it spells out, either the bare data URI itself or
    a markdown image whose url is the artifact's content. A boundary with no
    such artifact (an empty fence, a repeated data URI) stays as text.
    Artifacts never matched to a boundary are appended at the end.
    """
    if not content or not content.strip():
        return []
    if not artifacts:
        return [content]

    code_queue = [a for a in artifacts if a.type == "code"]
    images = [a for a in artifacts if a.type == "image"]
    used = set()
    result: List[Union[str, Artifact]] = []
    buffer = ""
    position = 0

    def flush():
        text = buffer.strip()
        if text:
            result.append(text)
        return ""

    for match in ARTIFACT_BOUNDARY_RE.finditer(content):
        buffer += content[position : match.start()]
        position = match.end()
        boundary = match.group(0)
        if boundary.startswith("```"):
            artifact = None
            if code_queue and code_queue[0].content in boundary:
                artifact = code_queue.pop(0)
        else:
            artifact = next(
                (
                    a
                    for a in images
                    if a.id not in used
                    and (a.content == boundary or boundary.endswith(f"({a.content})"))
                ),
                None,
            )

        if artifact is None:
            buffer += boundary
            continue
        buffer = flush()
        result.append(artifact)
        used.add(artifact.id)

    buffer += content[position:]
    flush()
    result.extend(a for a in artifacts if a.id not in used)
    return result


def get_file_extension(
    filename: Optional[str] = None, mime_type: Optional[str] = None
) -> str:
    """Best-effort file extension for downloading an artifact."""
    if filename:
        ext = filename.rsplit(".", 1)[-1]
        if ext:
            return ext.lower()

    if mime_type:
        return MIME_EXTENSIONS.get(mime_type, "bin")

    return "txt"


def should_render_inline(artifact: Artifact) -> bool:
    """Images and short code blocks render inline; everything else collapses."""
    if artifact.type == "image":
        return True
    if (
        artifact.type == "code"
        and len(artifact.content.split("\n")) <= INLINE_CODE_MAX_LINES
    ):
        return True
    return False
