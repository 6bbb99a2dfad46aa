"""
Selector-to-XPath Compiler
Turns a Selector into an XPath 1.0 expression for lxml
"""
from dataclasses import dataclass
from typing import Optional, Tuple
import logging

from .errors import MalformedSelectorError
from .selector import MatchOperator, Predicate, Selector, ValueKind
from .selector_parser import parse_selector

logger = logging.getLogger(__name__)

NodePath = Tuple[int, ...]

DOCUMENT_AXIS = "//*"
DESCENDANT_AXIS = ".//*"

_PREDICATE_TEMPLATES = {
    MatchOperator.EQUALS: "[@{name}={literal}]",
    MatchOperator.CONTAINS: "[contains(@{name},{literal})]",
    MatchOperator.PARTIAL: "[contains(@{name},{literal})]",
    MatchOperator.STARTS_WITH: "[starts-with(@{name},{literal})]",
}

# CONTAINS on free-text attributes matches whole space-separated words
_WORD_CONTAINS_TEMPLATE = "[contains(concat(' ', @{name}, ' '), {literal})]"

_RELATIVE_PREFIXES = ("./", "descendant::", "child::")


@dataclass(frozen=True)
class Scope:
    """Whole document, or the descendants of the node at ``context_path``"""
    context_path: Optional[NodePath] = None

    @classmethod
    def document(cls) -> 'Scope':
        return cls()

    @classmethod
    def descendants_of(cls, context_path: NodePath) -> 'Scope':
        return cls(tuple(context_path))

    @property
    def is_document(self) -> bool:
        return self.context_path is None


WHOLE_DOCUMENT = Scope()


@dataclass(frozen=True)
class CompiledQuery:
    xpath: str
    absolute: bool
    context_path: Optional[NodePath] = None

    @classmethod
    def from_xpath(cls, xpath: str, context_path: Optional[NodePath] = None) -> 'CompiledQuery':
        """Wrap a hand-written XPath, classifying it by its leading step"""
        return cls(xpath, not is_relative_xpath(xpath), context_path)

    def __str__(self) -> str:
        return self.xpath


def xpath_literal(value: str) -> str:
    """
    Return an XPath string literal for ``value``.

    XPath 1.0 has no escape character, so a value holding a single quote is
    split at every quote and rejoined with concat().
    """
    if "'" not in value:
        return f"'{value}'"
    parts = value.split("'")
    joined = ", \"'\", ".join(f"'{p}'" for p in parts)
    return f"concat({joined})"


def is_relative_xpath(xpath: str) -> bool:
    """True when the expression starts from the context node rather than the document"""
    step = xpath.lstrip().lstrip("(").lstrip()
    return step.startswith(_RELATIVE_PREFIXES)


def compile_predicate(predicate: Predicate) -> str:
    name = predicate.attribute.attribute
    if (predicate.operator is MatchOperator.CONTAINS
            and predicate.attribute.value_kind is ValueKind.WORD_TEXT):
        return _WORD_CONTAINS_TEMPLATE.format(name=name, literal=xpath_literal(f" {predicate.value} "))
    template = _PREDICATE_TEMPLATES[predicate.operator]
    return template.format(name=name, literal=xpath_literal(predicate.value))


def compile_selector(selector: Selector, scope: Scope = WHOLE_DOCUMENT) -> CompiledQuery:
    """
    Compile a selector into an XPath query.

    Args:
        selector: at least one predicate, optional match index
        scope: whole document (``//*``) or descendants of a node (``.//*``)

    Returns:
        CompiledQuery whose ``absolute`` flag reflects the scope

    Raises:
        MalformedSelectorError: the selector has no predicates
    """
    if selector.is_empty():
        raise MalformedSelectorError("Cannot compile a selector without predicates", "")

    axis = DOCUMENT_AXIS if scope.is_document else DESCENDANT_AXIS
    expression = axis + "".join(compile_predicate(p) for p in selector.predicates)
    if selector.match_index is not None:
        # XPath positions are 1-based
        expression = f"({expression})[{selector.match_index + 1}]"

    logger.debug(f"Compiled {selector!r} -> {expression}")
    return CompiledQuery(expression, scope.is_document, scope.context_path)


def compile_css(text: str, scope: Scope = WHOLE_DOCUMENT, strict_keys: bool = True) -> str:
    """Parse bracket-dialect text and return the XPath string"""
    return compile_selector(parse_selector(text, strict_keys=strict_keys), scope).xpath
