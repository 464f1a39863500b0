"""History options schema and resolution against a source model."""

from collections.abc import Callable, Mapping
from typing import Any

import sqlalchemy as sa
from pydantic import BaseModel, ConfigDict, StrictStr, field_validator
from pydantic.alias_generators import to_camel


class HistoryOptions(BaseModel):
    """Fully resolved history options.

    Field names are accepted in snake case or in camel case
    (``idAttr``, ``modelName``, ``tableName``).
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
        frozen=True,
        protected_namespaces=(),
    )

    # fields to track - defaults to all column attributes of the source model
    track: list[StrictStr]

    # the id attribute of the source model
    id_attr: StrictStr = "id"

    # the history model name (e.g. "OrderHistory")
    model_name: StrictStr

    # the history table name (e.g. "orders_history")
    table_name: StrictStr

    # called with the updated source instance; the result is stored in _user
    user: Callable[[Any], Any] | None = None

    @field_validator("track", mode="before")
    @classmethod
    def _single_track(cls, value: Any) -> Any:
        if isinstance(value, str):
            return [value]
        return value


# camelCase alias -> field name
_FIELD_NAMES = {field.alias: name for name, field in HistoryOptions.model_fields.items()}


def model_attributes(model: type) -> list[str]:
    """Column attribute keys of a mapped class, in mapper order."""
    return [attr.key for attr in sa.inspect(model).column_attrs]


def default_options(model: type) -> dict[str, Any]:
    mapper = sa.inspect(model)
    return {
        "track": model_attributes(model),
        "id_attr": "id",
        "model_name": f"{model.__name__}History",
        "table_name": f"{mapper.local_table.name}_history",
    }


def resolve_options(model: type, options: Mapping[str, Any] | None = None) -> HistoryOptions:
    """
    Resolve caller options against a source model.

    Args:
        model: The mapped source class
        options: Partial options, keyed by field name or camelCase alias

    Returns:
        HistoryOptions with every default filled in

    Raises:
        pydantic.ValidationError: If the options do not match the expected shape
    """
    values = default_options(model)
    for key, value in (options or {}).items():
        values[_FIELD_NAMES.get(key, key)] = value
    return HistoryOptions.model_validate(values)
