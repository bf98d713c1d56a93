"""Field maps and result filtering shared by finders and service actions."""

from collections.abc import Mapping, MutableMapping
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from ..context.accessor import FieldAccessor
from ..context.expander import StringExpander


class FieldMapEntry(BaseModel):
    """``field-map`` element: target field plus a context field or literal."""

    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    field_name: str = Field(alias="field-name", min_length=1)
    from_field: str = Field(default="", alias="from-field")
    value: str = ""

    @field_validator("value", "from_field", mode="before")
    @classmethod
    def _scalar_to_string(cls, value: Any) -> Any:
        if isinstance(value, bool):
            return "true" if value else "false"
        if isinstance(value, (int, float)):
            return str(value)
        return value

    @model_validator(mode="after")
    def _default_source(self) -> "FieldMapEntry":
        if self.from_field and self.value:
            raise ValueError(
                f"Cannot specify both from-field [{self.from_field}] and value "
                f"[{self.value}] for field-map entry [{self.field_name}]"
            )
        if not self.from_field and not self.value:
            self.from_field = self.field_name
        return self


FieldMap = Dict[FieldAccessor, Union[FieldAccessor, StringExpander]]


def make_field_map(entries: Optional[Iterable[Union[FieldMapEntry, Mapping[str, Any]]]]) -> FieldMap:
    """Build accessor/expander pairs from ``field-map`` entries."""
    field_map: FieldMap = {}
    for entry in entries or []:
        if not isinstance(entry, FieldMapEntry):
            entry = FieldMapEntry.model_validate(entry)
        source: Union[FieldAccessor, StringExpander]
        if entry.from_field:
            source = FieldAccessor(entry.from_field)
        else:
            source = StringExpander(entry.value)
        field_map[FieldAccessor(entry.field_name)] = source
    return field_map


def expand_field_map_to_context(
    field_map: FieldMap, context: Mapping[str, Any], out: MutableMapping[str, Any]
) -> None:
    """Resolve every field-map source against ``context`` into ``out``."""
    for target, source in field_map.items():
        if isinstance(source, FieldAccessor):
            value = source.get(context)
        else:
            value = source.expand_string(context)
        target.put(out, value)


def filter_by_date(
    values: List[Any],
    moment: Optional[datetime] = None,
    from_field: str = "fromDate",
    thru_field: str = "thruDate",
) -> List[Any]:
    """Keep values active at ``moment`` (now by default)."""
    moment = moment or datetime.now(timezone.utc)

    def comparable(stamp: datetime) -> datetime:
        if stamp.tzinfo is None and moment.tzinfo is not None:
            return stamp.replace(tzinfo=moment.tzinfo)
        return stamp

    active = []
    for value in values:
        from_date = value.get(from_field)
        thru_date = value.get(thru_field)
        if from_date is not None and comparable(from_date) > moment:
            continue
        if thru_date is not None and comparable(thru_date) <= moment:
            continue
        active.append(value)
    return active
