"""
Selector Grammar Parser
Parses the bracket dialect ``[key=value][key~=value]...`` into a Selector
"""
from typing import Iterator, Tuple
import logging

from .errors import MalformedSelectorError
from .selector import AttributeKind, MatchOperator, Selector

logger = logging.getLogger(__name__)

# Longest symbols first so '~=' is not read as a key ending in '~'
_OPERATORS = sorted(MatchOperator, key=lambda op: len(op.symbol), reverse=True)


def _is_key_char(ch: str) -> bool:
    return ch.isascii() and (ch.isalnum() or ch in "_-")


class SelectorScanner:
    """
    Splits selector text into its top-level bracket groups.

    Values may hold balanced brackets of their own (``[bounds=[0,2][4,5]]``),
    so group boundaries are found by tracking nesting depth rather than by
    splitting on ``]``.
    """

    __slots__ = ("length", "pos", "text")

    def __init__(self, text: str):
        self.text = text
        self.pos = 0
        self.length = len(text)

    def _stray(self, start: int) -> str:
        end = self.text.find("[", start)
        return self.text[start:] if end == -1 else self.text[start:end]

    def groups(self) -> Iterator[Tuple[str, str]]:
        """Yield ``(group_text, body)`` for every top-level group"""
        while self.pos < self.length:
            if self.text[self.pos] != "[":
                raise MalformedSelectorError("Unexpected characters outside brackets",
                                             self._stray(self.pos))
            start = self.pos
            depth = 0
            while self.pos < self.length:
                ch = self.text[self.pos]
                if ch == "[":
                    depth += 1
                elif ch == "]":
                    depth -= 1
                    if depth == 0:
                        break
                self.pos += 1

            if depth != 0:
                raise MalformedSelectorError("Unbalanced bracket", self.text[start:])

            self.pos += 1
            yield self.text[start:self.pos], self.text[start + 1:self.pos - 1]


def _split_group(group: str, body: str) -> Tuple[str, MatchOperator, str]:
    end = 0
    while end < len(body) and _is_key_char(body[end]):
        end += 1
    key = body[:end]
    if not key:
        raise MalformedSelectorError("Missing attribute key", group)

    rest = body[end:]
    for operator in _OPERATORS:
        if rest.startswith(operator.symbol):
            return key, operator, rest[len(operator.symbol):]
    raise MalformedSelectorError("Missing or unknown operator", group)


def parse_selector(text: str, strict_keys: bool = True) -> Selector:
    """
    Parse selector text into a Selector, keeping predicate order.

    Args:
        text: one or more bracket groups with no separators
        strict_keys: reject keys that do not name a known attribute; when
            False such groups are dropped with a warning

    Returns:
        Selector in parse order

    Raises:
        MalformedSelectorError: empty or structurally invalid text, unknown key
        UnsupportedValueError: value not allowed for its attribute
    """
    if not isinstance(text, str) or not text:
        raise MalformedSelectorError("Empty selector", text if isinstance(text, str) else None)
    if "\n" in text or "\r" in text:
        raise MalformedSelectorError("Selector must be a single line", text)

    selector = Selector()
    for group, body in SelectorScanner(text).groups():
        key, operator, value = _split_group(group, body)
        attribute = AttributeKind.from_key(key)
        if attribute is None:
            if strict_keys:
                raise MalformedSelectorError("Unknown selector attribute", group)
            logger.warning(f"Ignoring unknown selector attribute in {group!r}")
            continue
        selector = selector.add(attribute, operator, value)

    if selector.is_empty():
        raise MalformedSelectorError("Selector has no usable predicates", text)

    logger.debug(f"Parsed selector {text!r} into {len(selector)} predicate(s)")
    return selector

