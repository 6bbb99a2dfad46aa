"""
Screen and Element Handles
Binds snapshots and matched nodes to the action channel of one device
"""
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Union
import logging
import threading

from .actions import BaseActionChannel, RoutingAction
from .errors import ElementNotFoundError, StaleElementError
from .query import QueryExecutor
from .selector import AttributeKind, MatchOperator, Selector
from .selector_parser import parse_selector
from .snapshot import MatchedNode, NodePath, Snapshot

logger = logging.getLogger(__name__)

LONG_PRESS_DEFAULT_TIMEOUT = 1500  # ms


class HandleState(Enum):
    RESOLVED = "resolved"
    STALE = "stale"


@dataclass(frozen=True)
class Lookup:
    """
    How a handle was found: ``query`` run over the whole document, or over
    the descendants of whatever ``parent`` resolves to, keeping the match at
    ``position``.
    """
    query: Union[Selector, str]
    position: int = 0
    parent: Optional['Lookup'] = None

    def resolve(self, snapshot: Snapshot) -> MatchedNode:
        """
        Re-run the lookup against ``snapshot``.

        Raises:
            ElementNotFoundError: the query no longer has a match at ``position``
        """
        executor = QueryExecutor(snapshot)
        if self.parent is None:
            matches = executor.find_all(self.query)
        else:
            matches = executor.find_children(self.parent.resolve(snapshot), self.query)
        if self.position >= len(matches):
            raise ElementNotFoundError(
                self.query,
                f"Match with index {self.position} requested, but only "
                f"{len(matches)} elements match query: {self.query}",
            )
        return matches[self.position]


class Screen:
    """
    Current UI state of a device.

    Holds the latest Snapshot and swaps it for a new one on update(); handles
    produced from an older snapshot become stale instead of silently reading
    outdated data.
    """

    def __init__(self, channel: BaseActionChannel, xml_content: Optional[str] = None,
                 strict_keys: bool = True):
        self._channel = channel
        self._strict_keys = strict_keys
        self._lock = threading.Lock()
        self._snapshot: Optional[Snapshot] = None
        if xml_content is None:
            self.update()
        else:
            self.load(xml_content)

    @property
    def channel(self) -> BaseActionChannel:
        return self._channel

    @property
    def strict_keys(self) -> bool:
        return self._strict_keys

    @property
    def snapshot(self) -> Snapshot:
        with self._lock:
            return self._snapshot

    @property
    def version(self) -> int:
        return self.snapshot.version

    def load(self, xml_content: str) -> Snapshot:
        """Replace the current snapshot with one built from ``xml_content``"""
        snapshot = Snapshot(xml_content)
        with self._lock:
            previous = self._snapshot
            self._snapshot = snapshot
        if previous is not None:
            logger.info(f"Screen moved from snapshot v{previous.version} to v{snapshot.version}")
        return snapshot

    def update(self) -> Snapshot:
        """Fetch a fresh hierarchy through the action channel"""
        return self.load(self._channel.dump_ui_hierarchy())

    def _handles(self, nodes: List[MatchedNode], query: Union[Selector, str]) -> List['ElementHandle']:
        return [ElementHandle(self, node, Lookup(query, position))
                for position, node in enumerate(nodes)]

    # ── lookups ──────────────────────────────────────────────────────────────

    def get_element(self, selector: Selector) -> 'ElementHandle':
        node = QueryExecutor(self.snapshot).find_one(selector)
        return ElementHandle(self, node, Lookup(selector))

    def get_elements(self, selector: Selector) -> List['ElementHandle']:
        return self._handles(QueryExecutor(self.snapshot).find_all(selector), selector)

    def get_element_by_css(self, query: str) -> 'ElementHandle':
        return self.get_element(parse_selector(query, strict_keys=self._strict_keys))

    def get_elements_by_css(self, query: str) -> List['ElementHandle']:
        return self.get_elements(parse_selector(query, strict_keys=self._strict_keys))

    def get_element_by_xpath(self, xpath: str) -> 'ElementHandle':
        node = QueryExecutor(self.snapshot).find_one(xpath)
        return ElementHandle(self, node, Lookup(xpath))

    def get_elements_by_xpath(self, xpath: str) -> List['ElementHandle']:
        return self._handles(QueryExecutor(self.snapshot).find_all(xpath), xpath)

    def contains_element(self, selector: Selector) -> bool:
        return QueryExecutor(self.snapshot).exists(selector)

    def contains_element_by_css(self, query: str) -> bool:
        return self.contains_element(parse_selector(query, strict_keys=self._strict_keys))

    def has_element_with_text(self, text: str) -> bool:
        selector = Selector().add(AttributeKind.TEXT, MatchOperator.EQUALS, text)
        return self.contains_element(selector)

    def tap_element_with_text(self, text: str, match: int = 0) -> Any:
        """
        Tap the element displaying exactly ``text``.

        Args:
            text: search text
            match: which element to tap when several match; zero based
        """
        selector = Selector().add(AttributeKind.TEXT, MatchOperator.EQUALS, text)
        elements = self.get_elements(selector)
        if len(elements) <= match:
            raise ElementNotFoundError(
                selector,
                f"Tapping match with index {match} requested, but only "
                f"{len(elements)} elements matching the criteria found.",
            )
        return elements[match].tap()

    # ── device-side waits ────────────────────────────────────────────────────

    def wait_for_element_exists(self, selector: Selector, timeout: int) -> bool:
        """The channel receives the Selector itself, match index included"""
        return bool(self._channel.send_action(RoutingAction.WAIT_FOR_EXISTS, selector, timeout))

    def wait_until_element_gone(self, selector: Selector, timeout: int) -> bool:
        return bool(self._channel.send_action(RoutingAction.WAIT_UNTIL_GONE, selector, timeout))

    def wait_for_window_update(self, package_name: Optional[str], timeout: int) -> bool:
        """
        Wait for a window content update. With a package name, returns False
        straight away when the foreground window belongs to another package.
        """
        return bool(self._channel.send_action(RoutingAction.WAIT_FOR_WINDOW_UPDATE, package_name, timeout))

    def __repr__(self) -> str:
        return f"Screen(v{self.version})"


class ElementHandle:
    """
    Actionable reference to one node of a screen's snapshot.

    Records the snapshot version it was resolved against; every read or
    action checks it against the screen and raises StaleElementError once the
    screen has moved on. refresh() re-runs the Lookup that produced it; a
    handle built without one cannot be re-resolved and stays stale.
    """

    def __init__(self, screen: Screen, node: MatchedNode, lookup: Optional[Lookup] = None):
        self._screen = screen
        self._node = node
        self._lookup = lookup
        self.version = node.snapshot.version

    @property
    def state(self) -> HandleState:
        if self._screen.version != self.version:
            return HandleState.STALE
        return HandleState.RESOLVED

    @property
    def is_stale(self) -> bool:
        return self.state is HandleState.STALE

    def _fresh_node(self) -> MatchedNode:
        current = self._screen.version
        if current != self.version:
            raise StaleElementError(self.version, current)
        return self._node

    @property
    def lookup(self) -> Optional[Lookup]:
        return self._lookup

    @property
    def node(self) -> MatchedNode:
        return self._fresh_node()

    @property
    def path(self) -> NodePath:
        return self._node.path

    @property
    def attributes(self) -> Dict[str, str]:
        return self._fresh_node().attributes

    @property
    def text(self) -> Optional[str]:
        return self._fresh_node().text

    @property
    def bounds(self) -> Optional[Dict[str, int]]:
        return self._fresh_node().bounds

    def _center(self):
        node = self._fresh_node()
        center = node.center
        if center is None:
            raise ValueError(f"{node!r} has no bounds to act on")
        return center

    def tap(self) -> Any:
        x, y = self._center()
        logger.info(f"Tap at ({x}, {y}) on {self._node!r}")
        return self._screen.channel.send_action(RoutingAction.TAP, x, y)

    def long_press(self, timeout: int = LONG_PRESS_DEFAULT_TIMEOUT) -> Any:
        x, y = self._center()
        return self._screen.channel.send_action(RoutingAction.LONG_PRESS, x, y, timeout)

    def input_text(self, text: str, interval: int = 0) -> Any:
        """Focus the element, then type ``text`` with ``interval`` ms between keys"""
        self.tap()
        return self._screen.channel.send_action(RoutingAction.INPUT_TEXT, text, interval)

    def clear_text(self) -> Any:
        self.tap()
        return self._screen.channel.send_action(RoutingAction.CLEAR_FIELD)

    def get_children(self, query: Union[Selector, str]) -> List['ElementHandle']:
        """
        Descendants of this element matching ``query``.

        Args:
            query: Selector, or an XPath relative to this element (``.//...``)

        Raises:
            ElementNotFoundError: no descendant matches
            NotADescendantQueryError: an XPath rooted at the document was given
        """
        node = self._fresh_node()
        children = QueryExecutor(node.snapshot).find_children(node, query)
        parent = self._lookup
        return [
            ElementHandle(self._screen, child, Lookup(query, position, parent) if parent is not None else None)
            for position, child in enumerate(children)
        ]

    def get_children_by_css(self, query: str) -> List['ElementHandle']:
        return self.get_children(parse_selector(query, strict_keys=self._screen.strict_keys))

    def refresh(self) -> 'ElementHandle':
        """
        Resolve the same element against the screen's current snapshot.

        Raises:
            ElementNotFoundError: the lookup no longer matches at the same position
            StaleElementError: the handle is stale and has no Lookup to re-run
        """
        if self._lookup is None:
            self._fresh_node()
            return self
        return ElementHandle(self._screen, self._lookup.resolve(self._screen.snapshot), self._lookup)

    def __eq__(self, other) -> bool:
        if not isinstance(other, ElementHandle):
            return NotImplemented
        return self._node == other._node

    def __hash__(self) -> int:
        return hash(self._node)

    def __repr__(self) -> str:
        return f"ElementHandle({self._node!r}, {self.state.value})"
