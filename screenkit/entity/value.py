"""Entity values, query conditions and the delegator interface."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol, Sequence, Union

from ..errors import ScreenError


class EntityError(ScreenError):
    """Raised by the entity layer when a query or relation fetch fails."""


@dataclass(frozen=True)
class EntityExpr:
    """Single comparison of an entity field with a value."""

    field_name: str
    operator: str
    value: Any
    ignore_case: bool = False


@dataclass(frozen=True)
class EntityConditionList:
    """Conditions joined with ``and`` or ``or``."""

    conditions: Sequence["EntityCondition"] = field(default_factory=tuple)
    combine: str = "and"


EntityCondition = Union[EntityExpr, EntityConditionList]


class GenericValue(dict):
    """A row of a named entity; relation traversal goes through its delegator."""

    def __init__(
        self,
        entity_name: str,
        fields: Optional[Dict[str, Any]] = None,
        delegator: Optional["Delegator"] = None,
    ) -> None:
        super().__init__(fields or {})
        self.entity_name = entity_name
        self.delegator = delegator

    def _require_delegator(self) -> "Delegator":
        if self.delegator is None:
            raise EntityError(f"Value of entity [{self.entity_name}] has no delegator")
        return self.delegator

    def get_related_one(self, relation_name: str, use_cache: bool = False) -> Optional["GenericValue"]:
        return self._require_delegator().get_related_one(relation_name, self, use_cache)

    def get_related(
        self,
        relation_name: str,
        by_and_fields: Optional[Dict[str, Any]] = None,
        order_by: Optional[List[str]] = None,
        use_cache: bool = False,
    ) -> List["GenericValue"]:
        return self._require_delegator().get_related(
            relation_name, self, by_and_fields, order_by, use_cache
        )

    def __repr__(self) -> str:
        return f"GenericValue({self.entity_name!r}, {dict.__repr__(self)})"


class Delegator(Protocol):
    """Entity engine supplied by the hosting framework."""

    def get_pk_field_names(self, entity_name: str) -> List[str]:
        ...

    def find_one(
        self, entity_name: str, fields: Dict[str, Any], use_cache: bool = False
    ) -> Optional[GenericValue]:
        ...

    def find_list(
        self,
        entity_name: str,
        condition: Optional[EntityCondition],
        select_fields: Optional[List[str]] = None,
        order_by: Optional[List[str]] = None,
        use_cache: bool = False,
        distinct: bool = False,
    ) -> List[GenericValue]:
        ...

    def get_related_one(
        self, relation_name: str, value: GenericValue, use_cache: bool = False
    ) -> Optional[GenericValue]:
        ...

    def get_related(
        self,
        relation_name: str,
        value: GenericValue,
        by_and_fields: Optional[Dict[str, Any]] = None,
        order_by: Optional[List[str]] = None,
        use_cache: bool = False,
    ) -> List[GenericValue]:
        ...
