"""
Snapshot Indexer
Parses one UI hierarchy dump into an XPath tree (lxml) and a structural
tree (BeautifulSoup) that share node paths
"""
from lxml import etree
from bs4 import BeautifulSoup, Tag
from typing import Callable, Dict, Iterable, Iterator, List, Optional, Tuple
import itertools
import logging
import re
import threading
import uuid

from .errors import ElementNotFoundError, MalformedSelectorError, SnapshotParseError

logger = logging.getLogger(__name__)

NodePath = Tuple[int, ...]

_ANDROID_BOUNDS = re.compile(r'\[(-?\d+),(-?\d+)\]')
_IOS_BOUNDS = re.compile(r'\{(-?\d+),(-?\d+)\}')

_version_lock = threading.Lock()
_versions = itertools.count(1)


def _next_version() -> int:
    with _version_lock:
        return next(_versions)


def parse_bounds(bounds_str: Optional[str]) -> Optional[Dict[str, int]]:
    """
    Parse bounds string to coordinates
    Android: [x1,y1][x2,y2]
    iOS: {{x,y},{w,h}}
    """
    if not bounds_str:
        return None

    if bounds_str.startswith('['):
        matches = _ANDROID_BOUNDS.findall(bounds_str)
        if len(matches) == 2:
            x1, y1 = map(int, matches[0])
            x2, y2 = map(int, matches[1])
            return {'x': x1, 'y': y1, 'w': x2 - x1, 'h': y2 - y1}

    elif bounds_str.startswith('{'):
        matches = _IOS_BOUNDS.findall(bounds_str)
        if len(matches) == 2:
            x, y = map(int, matches[0])
            w, h = map(int, matches[1])
            return {'x': x, 'y': y, 'w': w, 'h': h}

    return None


def _walk(root, children_of: Callable) -> Iterator[Tuple[NodePath, object]]:
    """Pre-order walk yielding ``(path, node)``; document order"""
    stack = [((), root)]
    while stack:
        path, node = stack.pop()
        yield path, node
        children = list(children_of(node))
        for index in range(len(children) - 1, -1, -1):
            stack.append((path + (index,), children[index]))


def _element_children(element) -> Iterable:
    return element.iterchildren(tag=etree.Element)


def _tag_children(tag: Tag) -> Iterable[Tag]:
    return (child for child in tag.children if isinstance(child, Tag))


def _local_name(name: str) -> str:
    if name.startswith('{'):
        return name.rsplit('}', 1)[-1]
    return name.rsplit(':', 1)[-1]


class MatchedNode:
    """
    One node of a Snapshot, addressed by its path of element-child indexes.

    The same path resolves to the lxml element and to the soup tag. Nodes of
    different snapshots never compare equal.
    """

    __slots__ = ('_snapshot', '_path')

    def __init__(self, snapshot: 'Snapshot', path: NodePath):
        self._snapshot = snapshot
        self._path = tuple(path)

    @property
    def snapshot(self) -> 'Snapshot':
        return self._snapshot

    @property
    def path(self) -> NodePath:
        return self._path

    @property
    def element(self) -> etree._Element:
        """The lxml element; shared with the snapshot, read it but never modify it"""
        return self._snapshot.element_at(self._path)

    @property
    def tag(self) -> Tag:
        """The soup tag; shared with the snapshot, read it but never modify it"""
        return self._snapshot.tag_at(self._path)

    @property
    def name(self) -> str:
        return self.element.tag

    @property
    def attributes(self) -> Dict[str, str]:
        """Copy of the node's attributes"""
        return dict(self.element.attrib)

    def get(self, attribute: str, default: Optional[str] = None) -> Optional[str]:
        return self.element.get(attribute, default)

    @property
    def class_name(self) -> Optional[str]:
        return self.get('class') or self.get('className')

    @property
    def text(self) -> Optional[str]:
        return self.get('text')

    @property
    def bounds(self) -> Optional[Dict[str, int]]:
        return parse_bounds(self.get('bounds'))

    @property
    def center(self) -> Optional[Tuple[int, int]]:
        bounds = self.bounds
        if bounds is None:
            return None
        return bounds['x'] + bounds['w'] // 2, bounds['y'] + bounds['h'] // 2

    @property
    def parent(self) -> Optional['MatchedNode']:
        if not self._path:
            return None
        return MatchedNode(self._snapshot, self._path[:-1])

    @property
    def children(self) -> List['MatchedNode']:
        count = len(list(_element_children(self.element)))
        return [MatchedNode(self._snapshot, self._path + (i,)) for i in range(count)]

    def is_descendant_of(self, other: 'MatchedNode') -> bool:
        depth = len(other._path)
        return (self._snapshot is other._snapshot
                and len(self._path) > depth
                and self._path[:depth] == other._path)

    def __eq__(self, other) -> bool:
        if not isinstance(other, MatchedNode):
            return NotImplemented
        return self._snapshot is other._snapshot and self._path == other._path

    def __hash__(self) -> int:
        return hash((id(self._snapshot), self._path))

    def __lt__(self, other: 'MatchedNode') -> bool:
        if not isinstance(other, MatchedNode) or other._snapshot is not self._snapshot:
            return NotImplemented
        return self._path < other._path

    def __repr__(self) -> str:
        label = self.class_name or self.name
        return f"MatchedNode(v{self._snapshot.version}, path={list(self._path)}, {label})"


class Snapshot:
    """
    Immutable index of one UI hierarchy XML dump.

    Both views are parsed independently from the same text when the snapshot
    is built and are never modified afterwards, so a Snapshot can be shared
    between threads. A newer device state needs a new Snapshot. The lxml and
    soup objects it hands out (soup, MatchedNode.element, MatchedNode.tag)
    are shared and must be treated as read-only.
    """

    def __init__(self, xml_content: str):
        if not xml_content or not xml_content.strip():
            raise SnapshotParseError("XML content is empty")

        self._xml = xml_content
        source = xml_content.strip()

        try:
            parser = etree.XMLParser(resolve_entities=False, no_network=True)
            self._root = etree.fromstring(source.encode('utf-8'), parser=parser)
        except etree.XMLSyntaxError as e:
            raise SnapshotParseError(f"XML Syntax Error: {e}") from e

        # Attribute values stay plain strings so they compare like XPath strings
        soup = BeautifulSoup(source, 'xml', multi_valued_attributes=None)
        soup_root = next((c for c in soup.children if isinstance(c, Tag)), None)
        if soup_root is None:
            raise SnapshotParseError("Structural index found no root element")
        self._soup = soup

        self._elements: Dict[NodePath, etree._Element] = {}
        self._element_paths: Dict[etree._Element, NodePath] = {}
        for path, element in _walk(self._root, _element_children):
            self._elements[path] = element
            self._element_paths[element] = path

        self._tags: Dict[NodePath, Tag] = {}
        self._tag_paths: Dict[int, NodePath] = {}
        for path, tag in _walk(soup_root, _tag_children):
            self._tags[path] = tag
            self._tag_paths[id(tag)] = path

        self._check_views_agree()

        self._namespaces = {prefix: uri for prefix, uri in self._root.nsmap.items() if prefix}
        self.version = _next_version()
        self.snapshot_id = uuid.uuid4().hex
        logger.info(f"Indexed snapshot v{self.version}: {len(self._elements)} nodes")

    def _check_views_agree(self) -> None:
        if self._elements.keys() != self._tags.keys():
            raise SnapshotParseError(
                f"Tree views disagree: {len(self._elements)} elements vs {len(self._tags)} tags"
            )
        for path, element in self._elements.items():
            if _local_name(element.tag) != _local_name(self._tags[path].name):
                raise SnapshotParseError(f"Tree views disagree at node {list(path)}")

    # ── identity ─────────────────────────────────────────────────────────────

    @property
    def xml(self) -> str:
        return self._xml

    @property
    def node_count(self) -> int:
        return len(self._elements)

    @property
    def root(self) -> MatchedNode:
        return MatchedNode(self, ())

    @property
    def soup(self) -> BeautifulSoup:
        """Structural view; read-only, a changed tree no longer matches the lxml view"""
        return self._soup

    @property
    def query(self):
        from .query import QueryExecutor
        return QueryExecutor(self)

    def node_at(self, path: Iterable[int]) -> MatchedNode:
        path = tuple(path)
        if path not in self._elements:
            raise ElementNotFoundError(list(path), f"No node at path {list(path)} in snapshot v{self.version}")
        return MatchedNode(self, path)

    def element_at(self, path: NodePath) -> etree._Element:
        return self._elements[path]

    def tag_at(self, path: NodePath) -> Tag:
        return self._tags[path]

    def path_of_tag(self, tag: Tag) -> Optional[NodePath]:
        return self._tag_paths.get(id(tag))

    def iter_nodes(self) -> Iterator[MatchedNode]:
        for path in sorted(self._elements):
            yield MatchedNode(self, path)

    # ── evaluation ───────────────────────────────────────────────────────────

    def evaluate_xpath(self, xpath: str, context_path: Optional[NodePath] = None) -> List[NodePath]:
        """
        Evaluate XPath against the lxml view.

        Args:
            xpath: XPath 1.0 expression
            context_path: node to evaluate from; the root element when None

        Returns:
            Paths of the matched elements in document order. Non-element
            results (strings, numbers, attributes) are dropped.
        """
        context = self._root if context_path is None else self._elements[context_path]
        try:
            result = context.xpath(xpath, namespaces=self._namespaces)
        except etree.XPathError as e:
            raise MalformedSelectorError(f"Invalid XPath ({e})", xpath) from e

        if not isinstance(result, list):
            logger.debug(f"XPath {xpath!r} returned a {type(result).__name__}, not a node-set")
            return []

        paths = [self._element_paths[r] for r in result
                 if isinstance(r, etree._Element) and r in self._element_paths]
        return sorted(paths)

    def search_tags(self, match: Callable[[Tag], bool],
                    context_path: Optional[NodePath] = None) -> List[NodePath]:
        """Match soup tags with a Python predicate, returning paths in document order"""
        scope = self._soup if context_path is None else self._tags[context_path]
        return [self._tag_paths[id(tag)] for tag in scope.find_all(match)]

    def __repr__(self) -> str:
        return f"Snapshot(v{self.version}, {self.node_count} nodes)"


def index_snapshot(xml_content: str) -> Snapshot:
    """Index a UI hierarchy dump; raises SnapshotParseError on malformed XML"""
    return Snapshot(xml_content)
