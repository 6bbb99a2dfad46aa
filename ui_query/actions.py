"""
Action Channel
Abstract interface to the transport that talks to the device
"""
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any


class RoutingAction(Enum):
    GET_UI_XML = "get_ui_xml"
    TAP = "tap"
    LONG_PRESS = "long_press"
    INPUT_TEXT = "input_text"
    CLEAR_FIELD = "clear_field"
    WAIT_FOR_EXISTS = "wait_for_exists"
    WAIT_UNTIL_GONE = "wait_until_gone"
    WAIT_FOR_WINDOW_UPDATE = "wait_for_window_update"


class BaseActionChannel(ABC):
    """Abstract base class for the device transport"""

    @abstractmethod
    def send_action(self, action: RoutingAction, *args: Any) -> Any:
        """Dispatch an action to the device and return its result"""
        pass

    def dump_ui_hierarchy(self) -> str:
        """Fetch the current UI hierarchy XML"""
        return self.send_action(RoutingAction.GET_UI_XML)
