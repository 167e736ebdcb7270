from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import Any

from pydantic import BaseModel, ValidationError
from pydantic.alias_generators import to_snake

from strata.app.sources.contracts import DEFAULT_SOURCES, Source

LOGGER = logging.getLogger(__name__)

NESTED_SECTIONS = ("search", "injection")


class SourceConfigurationError(ValueError):
    def __init__(self, message: str, problems: Sequence[str] = ()) -> None:
        self.problems = tuple(problems)
        detail = "; ".join(self.problems)
        super().__init__(f"{message}: {detail}" if detail else message)


def _section_record(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(exclude_unset=True)
    if isinstance(value, Mapping):
        return {
            to_snake(inner) if isinstance(inner, str) else inner: item
            for inner, item in value.items()
        }
    return value


def _normalize_keys(record: Mapping[str, Any]) -> dict[str, Any]:
    normalized: dict[str, Any] = {}
    for key, value in record.items():
        snake_key = to_snake(key) if isinstance(key, str) else key
        if snake_key in NESTED_SECTIONS:
            value = _section_record(value)
        normalized[snake_key] = value
    return normalized


def _as_record(source: Source | Mapping[str, Any]) -> dict[str, Any]:
    if isinstance(source, Source):
        return source.model_dump()
    return _normalize_keys(source)


def _override_record(override: Any) -> dict[str, Any] | None:
    """Return an override as a snake_case record; only explicitly set model fields."""
    if isinstance(override, BaseModel):
        return _normalize_keys(override.model_dump(exclude_unset=True))
    if isinstance(override, Mapping):
        return _normalize_keys(override)
    return None


def _override_id(override: Any) -> str | None:
    record = _override_record(override)
    if record is None:
        return None
    source_id = record.get("id")
    return source_id if isinstance(source_id, str) else None


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    merged = dict(base)
    for key, value in override.items():
        if value is None:
            continue
        if key in NESTED_SECTIONS and isinstance(value, Mapping):
            section = dict(base.get(key) or {})
            section.update(
                {name: item for name, item in value.items() if item is not None}
            )
            merged[key] = section
            continue
        # a malformed section replaces the default so validation reports it
        merged[key] = value
    return merged


def merge_source_configs(
    defaults: Sequence[Source | Mapping[str, Any]],
    overrides: Sequence[Any] | None,
) -> list[Any]:
    """Merge user overrides into the default source list.

    Overrides (mappings or `Source` models) replace the default with the same
    id in place; unknown ids are appended in the order given. Overrides without
    a string id are appended verbatim and left for validation to reject.
    """
    merged: list[Any] = [_as_record(source) for source in defaults]
    position_by_id: dict[str, int] = {}
    for index, record in enumerate(merged):
        source_id = record.get("id")
        if isinstance(source_id, str):
            position_by_id.setdefault(source_id, index)

    for override in overrides or ():
        normalized = _override_record(override)
        source_id = normalized.get("id") if normalized is not None else None
        if normalized is None or not isinstance(source_id, str):
            merged.append(override)
            continue
        position = position_by_id.get(source_id)
        if position is None:
            position_by_id[source_id] = len(merged)
            merged.append(normalized)
            continue
        merged[position] = _deep_merge(merged[position], normalized)
    return merged


def validate_sources(records: Sequence[Any]) -> list[Source]:
    problems: list[str] = []
    sources: list[Source] = []
    for index, record in enumerate(records):
        try:
            sources.append(Source.model_validate(record))
        except ValidationError as exc:
            label = _override_id(record) or f"#{index}"
            for error in exc.errors():
                location = ".".join(str(part) for part in error["loc"]) or "record"
                problems.append(f"source {label}: {location} {error['msg']}")
    if problems:
        raise SourceConfigurationError("Invalid source configuration", problems)
    ensure_unique_ids(sources)
    return sources


def ensure_unique_ids(sources: Sequence[Source]) -> None:
    seen: set[str] = set()
    duplicates: list[str] = []
    for source in sources:
        if source.id in seen:
            duplicates.append(source.id)
        seen.add(source.id)
    if duplicates:
        raise SourceConfigurationError(
            "Duplicate source ids",
            [f"source {source_id} appears more than once" for source_id in duplicates],
        )


def build_sources(
    overrides: Sequence[Any] | None = None,
    defaults: Sequence[Source | Mapping[str, Any]] = DEFAULT_SOURCES,
) -> list[Source]:
    records = merge_source_configs(defaults, overrides)
    sources = validate_sources(records)
    LOGGER.debug(
        "Resolved effective sources",
        extra={
            "source_ids": [source.id for source in sources],
            "enabled": [source.id for source in sources if source.enabled],
        },
    )
    return sources
