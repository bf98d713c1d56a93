"""Entity values, finders and the delegator interface."""

from .finders import ByAndFinder, ByConditionFinder, PrimaryKeyFinder
from .util import FieldMapEntry, expand_field_map_to_context, filter_by_date, make_field_map
from .value import (
    Delegator,
    EntityCondition,
    EntityConditionList,
    EntityError,
    EntityExpr,
    GenericValue,
)

__all__ = [
    "ByAndFinder",
    "ByConditionFinder",
    "Delegator",
    "EntityCondition",
    "EntityConditionList",
    "EntityError",
    "EntityExpr",
    "FieldMapEntry",
    "GenericValue",
    "PrimaryKeyFinder",
    "expand_field_map_to_context",
    "filter_by_date",
    "make_field_map",
]
