"""Declarative entity finders that run a query and store its result."""

from abc import ABC, abstractmethod
from collections.abc import Mapping, MutableMapping
from typing import Any, Dict, List, Literal, Optional

import structlog
from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from ..context.accessor import FieldAccessor
from ..context.convert import is_empty
from ..context.expander import StringExpander
from ..context.stack import PARAMETERS
from ..errors import ActionConfigError
from .util import FieldMapEntry, expand_field_map_to_context, filter_by_date, make_field_map
from .value import Delegator, EntityCondition, EntityConditionList, EntityExpr, GenericValue


logger = structlog.get_logger(__name__)

Operator = Literal[
    "equals",
    "not-equals",
    "less",
    "greater",
    "less-equals",
    "greater-equals",
    "in",
    "not-in",
    "between",
    "like",
    "not-like",
]

_LIST_OPERATORS = {"in", "not-in", "between"}


class _Descriptor(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="forbid")


class ConditionExprDef(_Descriptor):
    """``condition-expr``: compare one field with a context field or literal."""

    field_name: str = Field(alias="field-name", min_length=1)
    operator: Operator = "equals"
    from_field: str = Field(default="", alias="from-field")
    value: str = ""
    ignore_if_null: bool = Field(default=False, alias="ignore-if-null")
    ignore_if_empty: bool = Field(default=False, alias="ignore-if-empty")
    ignore_case: bool = Field(default=False, alias="ignore-case")

    @model_validator(mode="after")
    def _single_source(self) -> "ConditionExprDef":
        if self.from_field and self.value:
            raise ValueError(
                f"Cannot specify both from-field and value for condition on [{self.field_name}]"
            )
        return self


class ConditionListDef(_Descriptor):
    """``condition-list``: nested conditions joined by ``combine``."""

    combine: Literal["and", "or"] = "and"
    conditions: List["ConditionNode"] = Field(default_factory=list)


class ConditionNode(_Descriptor):
    """Exactly one of ``condition-expr`` or ``condition-list``."""

    condition_expr: Optional[ConditionExprDef] = Field(default=None, alias="condition-expr")
    condition_list: Optional[ConditionListDef] = Field(default=None, alias="condition-list")

    @model_validator(mode="after")
    def _exactly_one(self) -> "ConditionNode":
        if (self.condition_expr is None) == (self.condition_list is None):
            raise ValueError("A condition must be exactly one of condition-expr or condition-list")
        return self


ConditionListDef.model_rebuild()


class PrimaryKeyDef(_Descriptor):
    """``entity-one`` descriptor."""

    entity_name: str = Field(alias="entity-name", min_length=1)
    value_field: str = Field(alias="value-field", min_length=1)
    use_cache: bool = Field(default=False, alias="use-cache")
    auto_field_map: bool = Field(default=True, alias="auto-field-map")
    field_map: List[FieldMapEntry] = Field(default_factory=list, alias="field-map")
    select_field: List[str] = Field(default_factory=list, alias="select-field")

    @model_validator(mode="before")
    @classmethod
    def _legacy_names(cls, data: Any) -> Any:
        if isinstance(data, Mapping) and "value-name" in data and "value-field" not in data:
            data = dict(data)
            data["value-field"] = data.pop("value-name")
        return data


class ListFinderDef(_Descriptor):
    """Options shared by the list-returning finders."""

    entity_name: str = Field(alias="entity-name", min_length=1)
    list_name: str = Field(alias="list", min_length=1)
    use_cache: bool = Field(default=False, alias="use-cache")
    filter_by_date: bool = Field(default=False, alias="filter-by-date")
    distinct: bool = False
    order_by: List[str] = Field(default_factory=list, alias="order-by")
    select_field: List[str] = Field(default_factory=list, alias="select-field")

    @model_validator(mode="before")
    @classmethod
    def _legacy_names(cls, data: Any) -> Any:
        if isinstance(data, Mapping) and "list-name" in data and "list" not in data:
            data = dict(data)
            data["list"] = data.pop("list-name")
        return data


class ByAndDef(ListFinderDef):
    """``entity-and`` descriptor."""

    field_map: List[FieldMapEntry] = Field(alias="field-map", min_length=1)


class ByConditionDef(ListFinderDef):
    """``entity-condition`` descriptor."""

    condition: Optional[ConditionNode] = None


def _validate(model: type, attributes: Mapping[str, Any], tag: str) -> Any:
    try:
        return model.model_validate(dict(attributes))
    except ValidationError as e:
        raise ActionConfigError(f"Invalid {tag} definition: {e}") from e


class _ConditionBuilder:
    """Expands a condition descriptor tree against a context."""

    def __init__(self, node: ConditionNode) -> None:
        self.node = node
        self._expr = node.condition_expr
        self._children: List[_ConditionBuilder] = []
        if node.condition_list is not None:
            self._children = [_ConditionBuilder(child) for child in node.condition_list.conditions]
        else:
            self._field = FieldAccessor(self._expr.from_field) if self._expr.from_field else None
            self._value = StringExpander(self._expr.value)

    def build(self, context: Mapping[str, Any]) -> Optional[EntityCondition]:
        if self._expr is None:
            conditions = [c for c in (child.build(context) for child in self._children) if c is not None]
            if not conditions:
                return None
            return EntityConditionList(tuple(conditions), self.node.condition_list.combine)

        expr = self._expr
        if self._field is not None:
            value: Any = self._field.get(context)
        else:
            value = self._value.expand_string(context)
            if expr.operator in _LIST_OPERATORS:
                value = [item.strip() for item in value.split(",")] if value else []

        if expr.ignore_if_null and value is None:
            return None
        if expr.ignore_if_empty and is_empty(value):
            return None
        return EntityExpr(expr.field_name, expr.operator, value, expr.ignore_case)


def _expand_all(expanders: List[StringExpander], context: Mapping[str, Any]) -> Optional[List[str]]:
    expanded = [e.expand_string(context) for e in expanders]
    expanded = [name for name in expanded if name]
    return expanded or None


class PrimaryKeyFinder:
    """Finds one value by primary key and stores it in ``value-field``."""

    def __init__(self, attributes: Mapping[str, Any]) -> None:
        self.definition: PrimaryKeyDef = _validate(PrimaryKeyDef, attributes, "entity-one")
        self.entity_name = StringExpander(self.definition.entity_name)
        self.value_field = FieldAccessor(self.definition.value_field)
        self.field_map = make_field_map(self.definition.field_map)
        self.select_fields = [StringExpander(s) for s in self.definition.select_field]

    def run_find(self, context: MutableMapping[str, Any], delegator: Delegator) -> None:
        entity_name = self.entity_name.expand_string(context)
        fields: Dict[str, Any] = {}
        if self.definition.auto_field_map:
            parameters = context.get(PARAMETERS)
            for pk_name in delegator.get_pk_field_names(entity_name):
                # parameters first so values from the main context override them
                if isinstance(parameters, Mapping) and parameters.get(pk_name) is not None:
                    fields[pk_name] = parameters[pk_name]
                if context.get(pk_name) is not None:
                    fields[pk_name] = context[pk_name]
        expand_field_map_to_context(self.field_map, context, fields)

        value = delegator.find_one(entity_name, fields, self.definition.use_cache)
        select = _expand_all(self.select_fields, context)
        if value is not None and select:
            value = GenericValue(
                value.entity_name, {k: v for k, v in value.items() if k in select}, value.delegator
            )

        logger.debug("Found entity by primary key", entity=entity_name, fields=fields, found=value is not None)
        self.value_field.put(context, value)


class _ListFinder(ABC):
    """Shared list-finder behavior: ordering, selection, date filter, output."""

    definition: ListFinderDef

    def _init_common(self) -> None:
        self.entity_name = StringExpander(self.definition.entity_name)
        self.list_field = FieldAccessor(self.definition.list_name)
        self.order_by = [StringExpander(o) for o in self.definition.order_by]
        self.select_fields = [StringExpander(s) for s in self.definition.select_field]

    @abstractmethod
    def _make_condition(self, context: Mapping[str, Any]) -> Optional[EntityCondition]:
        """Build the condition for this find, or None to find everything."""

    def run_find(self, context: MutableMapping[str, Any], delegator: Delegator) -> None:
        entity_name = self.entity_name.expand_string(context)
        values = delegator.find_list(
            entity_name,
            self._make_condition(context),
            select_fields=_expand_all(self.select_fields, context),
            order_by=_expand_all(self.order_by, context),
            use_cache=self.definition.use_cache,
            distinct=self.definition.distinct,
        )
        if self.definition.filter_by_date:
            values = filter_by_date(list(values))

        logger.debug("Found entity list", entity=entity_name, count=len(values))
        self.list_field.put(context, values)


class ByAndFinder(_ListFinder):
    """Finds values matching every field-map entry exactly."""

    def __init__(self, attributes: Mapping[str, Any]) -> None:
        self.definition: ByAndDef = _validate(ByAndDef, attributes, "entity-and")
        self._init_common()
        self.field_map = make_field_map(self.definition.field_map)

    def _make_condition(self, context: Mapping[str, Any]) -> Optional[EntityCondition]:
        fields: Dict[str, Any] = {}
        expand_field_map_to_context(self.field_map, context, fields)
        return EntityConditionList(
            tuple(EntityExpr(name, "equals", value) for name, value in fields.items()), "and"
        )


class ByConditionFinder(_ListFinder):
    """Finds values matching an arbitrary condition tree."""

    def __init__(self, attributes: Mapping[str, Any]) -> None:
        self.definition: ByConditionDef = _validate(ByConditionDef, attributes, "entity-condition")
        self._init_common()
        self._condition = _ConditionBuilder(self.definition.condition) if self.definition.condition else None

    def _make_condition(self, context: Mapping[str, Any]) -> Optional[EntityCondition]:
        if self._condition is None:
            return None
        return self._condition.build(context)
