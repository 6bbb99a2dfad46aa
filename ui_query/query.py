"""
Query Executor
Resolves selectors and XPath strings against a Snapshot
"""
from typing import List, Optional, Union
import logging

from bs4 import Tag

from .errors import ElementNotFoundError, MalformedSelectorError, NotADescendantQueryError
from .selector import Selector
from .snapshot import MatchedNode, NodePath, Snapshot
from .xpath_compiler import WHOLE_DOCUMENT, CompiledQuery, Scope, compile_selector

logger = logging.getLogger(__name__)

Query = Union[Selector, CompiledQuery, str]


class QueryExecutor:
    """
    Runs queries against one Snapshot.

    A query is a Selector, a CompiledQuery, or a raw XPath string that is
    passed through uncompiled. Results are always in document order.
    """

    def __init__(self, snapshot: Snapshot):
        self._snapshot = snapshot

    @property
    def snapshot(self) -> Snapshot:
        return self._snapshot

    def _compile(self, query: Query, scope: Scope) -> CompiledQuery:
        if isinstance(query, Selector):
            return compile_selector(query, scope)
        if isinstance(query, CompiledQuery):
            return query
        if isinstance(query, str):
            if not query.strip():
                raise MalformedSelectorError("Empty XPath query", query)
            return CompiledQuery.from_xpath(query, scope.context_path)
        raise TypeError(f"Unsupported query type: {type(query).__name__}")

    def _run_xpath(self, query: Query, scope: Scope) -> List[NodePath]:
        compiled = self._compile(query, scope)
        context_path = scope.context_path if scope.context_path is not None else compiled.context_path

        if context_path is not None and compiled.absolute:
            raise NotADescendantQueryError(compiled.xpath)

        paths = self._snapshot.evaluate_xpath(compiled.xpath, context_path)

        # Relative axes like ./.. still start with './'; catch them here
        if context_path is not None:
            depth = len(context_path)
            if any(len(p) <= depth or p[:depth] != context_path for p in paths):
                raise NotADescendantQueryError(compiled.xpath)

        logger.debug(f"XPath {compiled.xpath!r} matched {len(paths)} node(s)")
        return paths

    def _run_native(self, query: Query, scope: Scope) -> List[NodePath]:
        if not isinstance(query, Selector):
            raise TypeError("Native matching needs a Selector, not an XPath string")
        if query.is_empty():
            raise MalformedSelectorError("Cannot match a selector without predicates", "")

        predicates = query.predicates

        def match(tag: Tag) -> bool:
            return all(p.matches(tag.get(p.attribute.attribute)) for p in predicates)

        paths = self._snapshot.search_tags(match, scope.context_path)
        if query.match_index is not None:
            paths = paths[query.match_index:query.match_index + 1]

        logger.debug(f"Native match {query!r} matched {len(paths)} node(s)")
        return paths

    def find_all(self, query: Query, scope: Optional[Scope] = None,
                 native: bool = False) -> List[MatchedNode]:
        """
        All matches in document order; an empty list when nothing matches.

        Args:
            query: Selector, CompiledQuery or raw XPath
            scope: whole document by default
            native: match a Selector on the structural view instead of XPath
        """
        scope = scope or WHOLE_DOCUMENT
        run = self._run_native if native else self._run_xpath
        return [MatchedNode(self._snapshot, path) for path in run(query, scope)]

    def find_one(self, query: Query, scope: Optional[Scope] = None,
                 native: bool = False) -> MatchedNode:
        """
        First match in document order.

        Raises:
            ElementNotFoundError: nothing matches
        """
        matches = self.find_all(query, scope, native=native)
        if not matches:
            raise ElementNotFoundError(query)
        return matches[0]

    def find_children(self, parent: MatchedNode, query: Query,
                      native: bool = False) -> List[MatchedNode]:
        """
        Matches among the descendants of ``parent``.

        Raises:
            ElementNotFoundError: no descendant matches
            NotADescendantQueryError: the query is rooted at the document
            ValueError: ``parent`` belongs to another snapshot
        """
        if parent.snapshot is not self._snapshot:
            raise ValueError(
                f"Parent node belongs to snapshot v{parent.snapshot.version}, "
                f"not v{self._snapshot.version}"
            )
        if isinstance(query, CompiledQuery) and query.absolute:
            raise NotADescendantQueryError(query.xpath)

        matches = self.find_all(query, Scope.descendants_of(parent.path), native=native)
        if not matches:
            raise ElementNotFoundError(query, f"No child of {parent!r} matches query: {query}")
        return matches

    def exists(self, query: Query, scope: Optional[Scope] = None) -> bool:
        try:
            self.find_one(query, scope)
        except ElementNotFoundError:
            return False
        return True
