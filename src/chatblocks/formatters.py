"""Concrete implementations for block formatters."""

from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence

from dash import dcc, html
from dash.development.base_component import Component as DashComponent

from .artifacts import Parser, Regex, interleave, should_render_inline
from .blocks import create_preview
from .models import (
    Artifact,
    GenerationBlock,
    GenerationSearchMatch,
    HighlightRange,
    Message,
    MessageBlock,
    SearchMatch,
)
from .search import preview_ranges, split_highlights

NAV_USER_PREVIEW_LENGTH = 50
NAV_ASSISTANT_PREVIEW_LENGTH = 60

MATCHED_IN_LABELS = {
    "both": "matched in both",
    "user": "in question",
    "assistant": "in response",
}


def format_relative_time(timestamp: Optional[datetime], now: Optional[datetime] = None) -> str:
    """Short relative label such as ``5m ago``; older than a week shows the date."""
    if timestamp is None:
        return ""
    if timestamp.tzinfo is None:
        timestamp = timestamp.replace(tzinfo=timezone.utc)
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)

    minutes = int((now - timestamp).total_seconds() // 60)
    hours = minutes // 60
    days = hours // 24
    if minutes < 1:
        return "just now"
    if minutes < 60:
        return f"{minutes}m ago"
    if hours < 24:
        return f"{hours}h ago"
    if days < 7:
        return f"{days}d ago"
    return timestamp.date().isoformat()


def format_block_count(count: int) -> str:
    return f"{count} block{'s' if count != 1 else ''}"


class Formatter(ABC):
    """Interface for converting blocks into Dash components."""

    @abstractmethod
    def format_blocks(self, blocks: List[MessageBlock]) -> List[DashComponent]:
        """Converts message blocks into renderable Dash components."""
        pass

    @abstractmethod
    def format_navigation(
        self,
        blocks: List[MessageBlock],
        matches: Dict[str, SearchMatch],
        active_block_id: Optional[str] = None,
        selected_index: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> List[DashComponent]:
        """Converts (possibly filtered) blocks into navigation panel items."""
        pass


class Default(Formatter):
    """The default formatter, rendering blocks as styled message bubbles."""

    def __init__(self, parser: Optional[Parser] = None):
        self.parser = parser if parser is not None else Regex()

    def format_blocks(self, blocks: List[MessageBlock]) -> List[DashComponent]:
        if not blocks:
            return []
        return [self.format_block(block) for block in blocks]

    def format_block(self, block: MessageBlock) -> DashComponent:
        children = []
        if block.user_message is not None:
            children.append(self.format_user_message(block.user_message))
        if block.assistant_message is not None:
            children.append(self.format_assistant_message(block.assistant_message))

        return html.Div(
            children,
            id=block.element_id,
            className="message-block mb-3",
            **{"data-block-index": block.index if block.index is not None else ""},
        )

    def format_user_message(self, message: Message) -> DashComponent:
        style = {
            "padding": "10px",
            "borderRadius": "15px",
            "marginBottom": "10px",
            "maxWidth": "70%",
            "width": "fit-content",
            "marginLeft": "auto",
            "backgroundColor": "#dcf8c6",
        }
        children = [dcc.Markdown(message.content)]
        if message.files:
            children.append(
                html.Ul(
                    [html.Li(attachment.name) for attachment in message.files],
                    className="small text-muted mb-0",
                )
            )
        return html.Div(children, style=style)

    def format_assistant_message(self, message: Message) -> DashComponent:
        style = {
            "padding": "10px",
            "borderRadius": "15px",
            "marginBottom": "10px",
            "maxWidth": "70%",
            "width": "fit-content",
            "marginRight": "auto",
            "backgroundColor": "#ffffff",
            "border": "1px solid #eee",
        }
        children = self.format_content(message.content)
        if message.error:
            children.append(html.Div(message.error, className="text-danger small"))
        if message.is_streaming:
            children.append(html.Span("…", className="text-muted"))
        return html.Div(children, style=style)

    def format_content(self, content: str) -> List[DashComponent]:
        """Renders message text with its artifacts in positional order."""
        parsed = self.parser.parse(content)
        parts = []
        for part in interleave(content, parsed.artifacts):
            if isinstance(part, Artifact):
                parts.append(self.format_artifact(part))
            else:
                parts.append(dcc.Markdown(part))
        return parts

    def format_artifact(self, artifact: Artifact) -> DashComponent:
        if artifact.type == "image":
            return html.Figure(
                [
                    html.Img(
                        src=artifact.content,
                        alt=artifact.title or "",
                        style={"maxWidth": "100%", "borderRadius": "8px"},
                    ),
                    html.Figcaption(artifact.title, className="small text-muted"),
                ],
                id=artifact.id,
                className="artifact artifact-image my-2",
            )

        if artifact.type == "code":
            language = artifact.language or ""
            body = dcc.Markdown(f"```{language}\n{artifact.content}\n```")
            header = html.Div(
                [
                    html.Span(artifact.title, className="fw-semibold"),
                    html.Span(language, className="badge bg-secondary ms-2"),
                ],
                className="small mb-1",
            )
            if should_render_inline(artifact):
                return html.Div(
                    [header, body], id=artifact.id, className="artifact artifact-code my-2"
                )
            return html.Details(
                [html.Summary(header), body],
                id=artifact.id,
                className="artifact artifact-code my-2",
            )

        return html.Div(
            dcc.Markdown(artifact.content),
            id=artifact.id,
            className=f"artifact artifact-{artifact.type} my-2",
        )

    def format_highlighted(
        self, text: str, ranges: Sequence[HighlightRange]
    ) -> List[DashComponent]:
        return [
            html.Mark(fragment, className="px-0") if is_highlight else fragment
            for fragment, is_highlight in split_highlights(text, ranges)
        ]

    def format_navigation(
        self,
        blocks: List[MessageBlock],
        matches: Dict[str, SearchMatch],
        active_block_id: Optional[str] = None,
        selected_index: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> List[DashComponent]:
        if not blocks:
            return [html.Div("No matching messages", className="text-muted small p-2")]
        return [
            self.format_navigation_item(
                block,
                matches.get(block.id),
                is_active=block.id == active_block_id,
                is_selected=position == selected_index,
                now=now,
            )
            for position, block in enumerate(blocks)
        ]

    def format_navigation_item(
        self,
        block: MessageBlock,
        match: Optional[SearchMatch] = None,
        is_active: bool = False,
        is_selected: bool = False,
        now: Optional[datetime] = None,
    ) -> DashComponent:
        header = [
            html.Span(
                f"#{block.index}" if block.index is not None else "•",
                className="badge bg-secondary me-2",
            ),
            html.Span(format_relative_time(block.timestamp, now), className="text-muted"),
        ]

        body = []
        if block.user_message is not None:
            user_preview = create_preview(
                block.user_message.content, NAV_USER_PREVIEW_LENGTH
            )
            ranges = (
                preview_ranges(match.highlight_ranges, user_preview, NAV_USER_PREVIEW_LENGTH)
                if match
                else []
            )
            body.append(
                html.Div(self.format_highlighted(user_preview, ranges), className="fw-medium")
            )
        if block.assistant_message is not None:
            body.append(
                html.Div(
                    create_preview(
                        block.assistant_message.content, NAV_ASSISTANT_PREVIEW_LENGTH
                    ),
                    className="text-muted",
                )
            )
        if match is not None:
            body.append(
                html.Div(MATCHED_IN_LABELS[match.matched_in], className="text-info")
            )

        class_name = "list-group-item list-group-item-action small"
        if is_active:
            class_name += " active"
        if is_selected:
            class_name += " border-primary"

        return html.Button(
            [html.Div(header, className="mb-1"), *body],
            id={"type": "nav-item", "id": block.id},
            n_clicks=0,
            className=class_name,
        )

    def format_generation_block(
        self, block: GenerationBlock, match: Optional[GenerationSearchMatch] = None
    ) -> DashComponent:
        ranges = match.highlight_ranges if match else []
        count = len(block.images)
        return html.Div(
            [
                html.Div(
                    [
                        html.Span(f"#{block.index}", className="badge bg-secondary me-2"),
                        *self.format_highlighted(block.prompt, ranges),
                    ],
                    className="mb-2",
                ),
                html.Div(
                    [
                        html.Img(
                            src=image.url,
                            alt=image.prompt,
                            style={"width": "128px", "height": "128px", "objectFit": "cover"},
                            className="me-2 rounded",
                        )
                        for image in block.images
                    ],
                ),
                html.Div(
                    f"{count} image{'s' if count != 1 else ''} · "
                    f"{block.params.width}×{block.params.height} · "
                    f"{block.params.steps} steps",
                    className="small text-muted mt-1",
                ),
            ],
            id=block.element_id,
            className="generation-block mb-3",
        )
