"""
UI Query
Selector and XPath lookups over Android UI hierarchy snapshots
"""
from .actions import BaseActionChannel, RoutingAction
from .errors import (
    ElementNotFoundError,
    MalformedSelectorError,
    NotADescendantQueryError,
    SnapshotParseError,
    StaleElementError,
    UiQueryError,
    UnsupportedValueError,
)
from .query import QueryExecutor
from .screen import ElementHandle, HandleState, Lookup, Screen
from .selector import AttributeKind, MatchOperator, Predicate, Selector, ValueKind
from .selector_parser import parse_selector
from .snapshot import MatchedNode, Snapshot, index_snapshot, parse_bounds
from .xpath_compiler import CompiledQuery, Scope, compile_css, compile_selector, xpath_literal

__all__ = [
    "AttributeKind",
    "BaseActionChannel",
    "CompiledQuery",
    "ElementHandle",
    "ElementNotFoundError",
    "HandleState",
    "Lookup",
    "MalformedSelectorError",
    "MatchOperator",
    "MatchedNode",
    "NotADescendantQueryError",
    "Predicate",
    "QueryExecutor",
    "RoutingAction",
    "Scope",
    "Screen",
    "Selector",
    "Snapshot",
    "SnapshotParseError",
    "StaleElementError",
    "UiQueryError",
    "UnsupportedValueError",
    "ValueKind",
    "compile_css",
    "compile_selector",
    "index_snapshot",
    "parse_bounds",
    "parse_selector",
    "xpath_literal",
]
