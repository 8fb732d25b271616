"""Per-call and default option bags for Petal clients."""

from __future__ import annotations

from typing import Any, Mapping, Union

from pydantic import BaseModel, ConfigDict, ValidationError
from pydantic.alias_generators import to_camel, to_snake

from .exceptions import PetalValidationError


class RequestOptions(BaseModel):
    """Options accepted by every client operation.

    Only fields the caller actually supplied are consulted when merging; the
    set is available as ``model_fields_set``. That keeps an explicit ``None``
    (for instance ``baseurl=None`` to drop a default base URL) distinct from
    leaving the field out.
    """

    model_config = ConfigDict(
        extra="forbid",
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
        coerce_numbers_to_str=True,
        arbitrary_types_allowed=True,
    )

    url: str | None = None
    baseurl: str | None = None
    method: str | None = None
    headers: dict[str, str | None] = {}
    query: dict[str, Any] = {}
    body: Any = None
    timeout: float | None = None
    response_type: str = "json"
    query_formatter: Any = "default"
    handle_errors: bool = False
    log_errors: bool = False

    def supplied(self, name: str) -> bool:
        return name in self.model_fields_set


OptionsInput = Union[RequestOptions, Mapping[str, Any], None]


def coerce_options(options: OptionsInput = None, overrides: Mapping[str, Any] | None = None) -> RequestOptions:
    """Build a ``RequestOptions`` from a model or mapping plus keyword overrides."""
    if isinstance(options, RequestOptions) and not overrides:
        return options

    if options is None:
        data: dict[str, Any] = {}
    elif isinstance(options, RequestOptions):
        data = {name: getattr(options, name) for name in options.model_fields_set}
    elif isinstance(options, Mapping):
        data = dict(options)
    else:
        raise PetalValidationError(f"options must be a mapping, got {type(options).__name__}")

    if overrides:
        for key, value in overrides.items():
            # A keyword override replaces the same option given in either spelling.
            data.pop(to_camel(key), None)
            data.pop(to_snake(key), None)
            data[key] = value

    try:
        return RequestOptions.model_validate(data)
    except ValidationError as exc:
        raise PetalValidationError(f"Invalid request options: {exc}", cause=exc) from exc
