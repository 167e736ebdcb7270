from __future__ import annotations

import re
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

from strata.app.search.contracts import SearchHit

CONTEXT_OPEN_TAG = "<strata-context>"
CONTEXT_CLOSE_TAG = "</strata-context>"
TRUNCATION_MARKER = "..."

_TOKEN_PATTERN = re.compile(r"\{\{(\w+)\}\}")


class Placeholder(str, Enum):
    CONTENT = "content"
    NAME = "name"
    SOURCE = "source"
    SCORE = "score"


@dataclass(frozen=True)
class RenderInput:
    hit: SearchHit
    source_name: str
    scope_path: str
    max_content_length: int


def truncate_content(content: str, max_length: int) -> str:
    stripped = content.strip()
    if len(stripped) <= max_length:
        return stripped
    return stripped[:max_length] + TRUNCATION_MARKER


def preview_content(content: str, limit: int = 200) -> str:
    """Cut at the last word boundary before `limit` when the content is longer."""
    stripped = content.strip()
    if len(stripped) <= limit:
        return stripped
    last_space = stripped.rfind(" ", 0, limit + 1)
    cut = stripped[:last_space] if last_space > 0 else stripped[:limit]
    return cut + TRUNCATION_MARKER


def relative_origin(origin: str, scope_path: str) -> str:
    if not scope_path or not origin.startswith(scope_path):
        return origin
    remainder = origin[len(scope_path) :]
    return remainder[1:] if remainder.startswith("/") else remainder


def wrap_context(
    body: str,
    open_tag: str = CONTEXT_OPEN_TAG,
    close_tag: str = CONTEXT_CLOSE_TAG,
) -> str:
    return f"{open_tag}\n{body}\n{close_tag}"


_EXTRACTORS: dict[Placeholder, Callable[[RenderInput], str]] = {
    Placeholder.CONTENT: lambda item: truncate_content(
        item.hit.content, item.max_content_length
    ),
    Placeholder.NAME: lambda item: item.hit.source_name or item.source_name,
    Placeholder.SOURCE: lambda item: relative_origin(
        item.hit.source_origin, item.scope_path
    ),
    Placeholder.SCORE: lambda item: f"{item.hit.score:.2f}",
}

_PLACEHOLDERS_BY_TOKEN = {placeholder.value: placeholder for placeholder in Placeholder}


def render_template(template: str, item: RenderInput) -> str:
    """Substitute recognised `{{token}}` placeholders in a single pass.

    Unknown tokens stay verbatim, and text produced by a substitution is never
    scanned again.
    """

    def _substitute(match: re.Match[str]) -> str:
        placeholder = _PLACEHOLDERS_BY_TOKEN.get(match.group(1))
        if placeholder is None:
            return match.group(0)
        return _EXTRACTORS[placeholder](item)

    return _TOKEN_PATTERN.sub(_substitute, template)
