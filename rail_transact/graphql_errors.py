"""
GraphQL rendering of epic errors.

Converts the EpicError records collected on a context into flat
``MutationError`` objects suitable for a graphene mutation payload.
"""

from typing import Any, Iterable, Optional

import graphene

from .epics.errors import EpicError, ErrorKind


class MutationError(graphene.ObjectType):
    """
    Structured error type for GraphQL mutations.

    Attributes:
        field: The field name where the error occurred (optional)
        message: The error message describing what went wrong
        kind: Error category
    """

    field = graphene.String(description="Field the error relates to")
    message = graphene.String(
        required=False,
        description="What went wrong",
    )
    kind = graphene.String(description="Error category")


def _normalize_field_path(field: Any, prefix: Optional[str] = None) -> Optional[str]:
    """
    Convert backend field identifiers (including dotted, double-underscore or list
    index notations) to a consistent dot-separated path understood by the frontend.
    """
    if field is None:
        return prefix

    segment = str(field)
    segment = segment.replace("__", ".")
    segment = segment.replace("[", ".").replace("]", "")
    segment = segment.replace("..", ".").strip(".")
    if prefix:
        return f"{prefix}.{segment}".strip(".")
    return segment or None


def _flatten_details(
    detail: Any,
    path: Optional[str],
    kind: str,
    accumulator: list[MutationError],
) -> None:
    """
    Recursively flatten per-field validation payloads (dict/list/str) into
    MutationError objects with normalized field paths.
    """
    if isinstance(detail, dict):
        for field_name, messages in detail.items():
            next_path = None if field_name == "__all__" else field_name
            _flatten_details(messages, _normalize_field_path(next_path, path), kind, accumulator)
        return

    if isinstance(detail, (list, tuple)):
        for index, item in enumerate(detail):
            next_path = path
            if isinstance(item, (dict, list)):
                next_path = _normalize_field_path(index, path)
            _flatten_details(item, next_path, kind, accumulator)
        return

    accumulator.append(MutationError(field=path, message=str(detail), kind=kind))


def build_mutation_error(error: EpicError) -> list[MutationError]:
    """
    Render one EpicError.

    Validation errors expand into one MutationError per field message,
    prefixed with the assigns key that held the changeset. Other errors
    render as a single entry.
    """
    kind = error.kind.value
    if error.kind == ErrorKind.VALIDATION and error.details:
        prefix = error.key if isinstance(error.key, str) else None
        collected: list[MutationError] = []
        _flatten_details(error.details, _normalize_field_path(prefix), kind, collected)
        return collected

    field = error.field
    if field is None and isinstance(error.key, str):
        field = error.key
    return [MutationError(field=_normalize_field_path(field), message=error.message, kind=kind)]


def build_mutation_errors(errors: Iterable[EpicError]) -> list[MutationError]:
    """Convert EpicErrors into a flat list of MutationError objects."""
    rendered: list[MutationError] = []
    for error in errors:
        rendered.extend(build_mutation_error(error))
    return rendered
