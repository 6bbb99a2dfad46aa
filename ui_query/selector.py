"""
Selector Model
Attribute predicates that describe which UI hierarchy nodes to match
"""
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, Optional, Tuple
import re

from .errors import MalformedSelectorError, UnsupportedValueError

# Characters that XML 1.0 cannot carry, so no attribute can ever hold them
_XML_ILLEGAL_CHARS = re.compile(r'[\x00-\x08\x0b\x0c\x0e-\x1f]')

BOOLEAN_LITERALS = ('true', 'false')

_INTEGER_VALUE = re.compile(r'-?\d+')
_BOUNDS_VALUE = re.compile(r'\[-?\d+,-?\d+\]\[-?\d+,-?\d+\]')


class ValueKind(Enum):
    TEXT = "text"
    WORD_TEXT = "word_text"  # free text, CONTAINS matches whole words
    BOOLEAN = "boolean"
    INTEGER = "integer"
    BOUNDS = "bounds"


class AttributeKind(Enum):
    """
    Node attributes a selector can constrain.

    Each member is bound to the attribute name as it appears in the hierarchy
    XML; that name is also the key used by the bracket dialect.
    """
    # uiautomator dump attributes
    INDEX = ("index", ValueKind.INTEGER)
    TEXT = ("text", ValueKind.WORD_TEXT)
    RESOURCE_ID = ("resource-id", ValueKind.TEXT)
    CLASS = ("class", ValueKind.TEXT)
    PACKAGE = ("package", ValueKind.TEXT)
    CONTENT_DESC = ("content-desc", ValueKind.WORD_TEXT)
    CHECKABLE = ("checkable", ValueKind.BOOLEAN)
    CHECKED = ("checked", ValueKind.BOOLEAN)
    CLICKABLE = ("clickable", ValueKind.BOOLEAN)
    ENABLED = ("enabled", ValueKind.BOOLEAN)
    FOCUSABLE = ("focusable", ValueKind.BOOLEAN)
    FOCUSED = ("focused", ValueKind.BOOLEAN)
    SCROLLABLE = ("scrollable", ValueKind.BOOLEAN)
    LONG_CLICKABLE = ("long-clickable", ValueKind.BOOLEAN)
    PASSWORD = ("password", ValueKind.BOOLEAN)
    SELECTED = ("selected", ValueKind.BOOLEAN)
    BOUNDS = ("bounds", ValueKind.BOUNDS)

    # camel-case descriptor attributes
    CLASS_NAME = ("className", ValueKind.TEXT)
    RESOURCE_ID_DESCRIPTOR = ("resourceId", ValueKind.TEXT)
    CONTENT_DESCRIPTION = ("contentDesc", ValueKind.WORD_TEXT)
    PACKAGE_NAME = ("packageName", ValueKind.TEXT)

    def __init__(self, attribute: str, value_kind: ValueKind):
        self.attribute = attribute
        self.value_kind = value_kind

    @property
    def key(self) -> str:
        return self.attribute

    @classmethod
    def from_key(cls, key: str) -> Optional['AttributeKind']:
        """Case-sensitive lookup of a dialect key, None when unmapped"""
        return _KEY_TABLE.get(key)


_KEY_TABLE: Dict[str, AttributeKind] = {kind.attribute: kind for kind in AttributeKind}


class MatchOperator(Enum):
    EQUALS = "="
    CONTAINS = "~="
    PARTIAL = "*="
    STARTS_WITH = "^="

    @property
    def symbol(self) -> str:
        return self.value


@dataclass(frozen=True)
class Predicate:
    attribute: AttributeKind
    operator: MatchOperator
    value: str

    def __post_init__(self):
        if not isinstance(self.value, str):
            raise UnsupportedValueError(
                f"Value for {self.attribute.key} must be a string, got {type(self.value).__name__}",
                value=self.value,
            )
        if _XML_ILLEGAL_CHARS.search(self.value):
            raise UnsupportedValueError(
                f"Value for {self.attribute.key} contains characters XML cannot represent",
                value=self.value,
            )
        if self.operator is not MatchOperator.EQUALS:
            return

        kind = self.attribute.value_kind
        # No case folding: 'True' never matches a dumped 'true'
        if kind is ValueKind.BOOLEAN and self.value not in BOOLEAN_LITERALS:
            raise UnsupportedValueError(
                f"{self.attribute.key} is boolean; expected 'true' or 'false', got {self.value!r}",
                value=self.value,
            )
        if kind is ValueKind.INTEGER and not _INTEGER_VALUE.fullmatch(self.value):
            raise UnsupportedValueError(
                f"{self.attribute.key} is an integer, got {self.value!r}",
                value=self.value,
            )
        if kind is ValueKind.BOUNDS and not _BOUNDS_VALUE.fullmatch(self.value):
            raise UnsupportedValueError(
                f"{self.attribute.key} expects '[x1,y1][x2,y2]', got {self.value!r}",
                value=self.value,
            )

    def matches(self, actual: Optional[str]) -> bool:
        """
        Evaluate the predicate against a node's attribute value.

        Follows XPath 1.0 string semantics so that native matching and the
        compiled query agree: a missing attribute never equals anything but
        behaves as the empty string for the string functions.
        """
        if self.operator is MatchOperator.EQUALS:
            return actual is not None and actual == self.value

        actual = actual or ''
        if self.operator is MatchOperator.CONTAINS and self.attribute.value_kind is ValueKind.WORD_TEXT:
            return f" {self.value} " in f" {actual} "
        if self.operator in (MatchOperator.CONTAINS, MatchOperator.PARTIAL):
            return self.value in actual
        return actual.startswith(self.value)

    def to_text(self) -> str:
        return f"[{self.attribute.key}{self.operator.symbol}{self.value}]"


class Selector:
    """
    Ordered set of predicates plus an optional zero-based match index.

    Predicates are AND-combined; their order only matters for rendering the
    selector back to text. Selectors are immutable: add() and at() return
    new selectors.
    """

    def __init__(self, predicates: Iterable[Predicate] = (), match_index: Optional[int] = None):
        self._predicates: Tuple[Predicate, ...] = tuple(predicates)
        self._match_index: Optional[int] = None
        if match_index is not None:
            self._match_index = self._check_index(match_index)

    @staticmethod
    def _check_index(index: int) -> int:
        if isinstance(index, bool) or not isinstance(index, int) or index < 0:
            raise MalformedSelectorError("Match index must be a non-negative integer", str(index))
        return index

    @classmethod
    def parse(cls, text: str, strict_keys: bool = True) -> 'Selector':
        from .selector_parser import parse_selector
        return parse_selector(text, strict_keys=strict_keys)

    def add(self, attribute: AttributeKind, operator: MatchOperator, value: str) -> 'Selector':
        """Copy of this selector with one more predicate, so calls can be chained"""
        return Selector(self._predicates + (Predicate(attribute, operator, value),), self._match_index)

    def at(self, index: int) -> 'Selector':
        """Copy of this selector that picks the match at ``index``"""
        return Selector(self._predicates, match_index=index)

    @property
    def predicates(self) -> Tuple[Predicate, ...]:
        return self._predicates

    @property
    def match_index(self) -> Optional[int]:
        return self._match_index

    def is_empty(self) -> bool:
        return not self._predicates

    def to_text(self) -> str:
        return "".join(predicate.to_text() for predicate in self._predicates)

    def __len__(self) -> int:
        return len(self._predicates)

    def __eq__(self, other) -> bool:
        if not isinstance(other, Selector):
            return NotImplemented
        return self._predicates == other._predicates and self._match_index == other._match_index

    def __hash__(self) -> int:
        return hash((self._predicates, self._match_index))

    def __repr__(self) -> str:
        if self._match_index is None:
            return f"Selector({self.to_text()!r})"
        return f"Selector({self.to_text()!r}, match_index={self._match_index})"

    def __str__(self) -> str:
        return self.to_text()
