"""
Errors raised by the selector, snapshot and query layers
"""
from typing import Optional


class UiQueryError(Exception):
    """Base class for every error raised by ui_query"""


class MalformedSelectorError(UiQueryError, ValueError):
    """Selector text or model that cannot be turned into a query"""

    def __init__(self, message: str, fragment: Optional[str] = None):
        self.fragment = fragment
        if fragment is not None:
            message = f"{message}: {fragment!r}"
        super().__init__(message)


class UnsupportedValueError(UiQueryError, ValueError):
    """Predicate value that cannot be expressed for its attribute"""

    def __init__(self, message: str, value: Optional[str] = None):
        self.value = value
        super().__init__(message)


class SnapshotParseError(UiQueryError):
    """UI hierarchy XML that could not be indexed"""


class ElementNotFoundError(UiQueryError, LookupError):
    """A query that requires at least one match found none"""

    def __init__(self, query: object, message: Optional[str] = None):
        self.query = query
        super().__init__(message or f"No element matches query: {query}")


class NotADescendantQueryError(UiQueryError):
    """A child-scoped lookup was given a query rooted at the document"""

    def __init__(self, xpath: str):
        self.xpath = xpath
        super().__init__(f"Child query must be relative to its parent, got absolute XPath: {xpath}")


class StaleElementError(UiQueryError):
    """An element handle was used after its screen moved on to a newer snapshot"""

    def __init__(self, handle_version: int, screen_version: int):
        self.handle_version = handle_version
        self.screen_version = screen_version
        super().__init__(
            f"Element resolved against snapshot v{handle_version}, "
            f"screen is at v{screen_version}; refresh the element first"
        )
