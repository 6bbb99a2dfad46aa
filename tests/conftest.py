"""
Shared fixtures: a small uiautomator dump and a recording action channel.
"""
from typing import Any, List, Optional, Tuple

import pytest

from ui_query.actions import BaseActionChannel, RoutingAction
from ui_query.screen import Screen
from ui_query.snapshot import Snapshot

# Paths (element-child indexes from <hierarchy>):
#   (0,)              root FrameLayout
#   (0, 0)            LinearLayout
#   (0, 0, 0)         FrameLayout content-desc="derp"
#   (0, 0, 1)         action bar LinearLayout [7,19][105,55]
#   (0, 0, 1, 0)        FrameLayout [7,19][37,55]
#   (0, 0, 1, 0, 0)       ImageView [10,25][34,49]
#   (0, 0, 1, 1)        LinearLayout [37,19][105,55]
#   (0, 0, 1, 1, 0)       LinearLayout [37,27][99,46]
#   (0, 0, 1, 1, 0, 0)      TextView [37,27][99,46]
#   (0, 0, 2)         content FrameLayout
#   (0, 0, 2, 0..2)     three Buttons
#   (0, 0, 2, 3)        CheckBox
COOLSTORY_XML = """<?xml version='1.0' encoding='UTF-8' standalone='yes' ?>
<hierarchy rotation="0">
  <node index="0" text="" resource-id="" class="android.widget.FrameLayout" package="com.example.coolstory" content-desc="" checkable="false" checked="false" clickable="false" enabled="true" bounds="[0,0][480,800]">
    <node index="0" text="" resource-id="" class="android.widget.LinearLayout" package="com.example.coolstory" content-desc="" checkable="false" checked="false" clickable="false" enabled="true" bounds="[0,0][480,800]">
      <node index="0" text="" resource-id="" class="android.widget.FrameLayout" package="com.example.coolstory" content-desc="derp" checkable="false" checked="false" clickable="false" enabled="true" bounds="[0,0][480,19]" />
      <node index="1" text="" resource-id="" class="android.widget.LinearLayout" package="com.example.coolstory" content-desc="" checkable="false" checked="false" clickable="true" enabled="true" bounds="[7,19][105,55]">
        <node index="0" text="" resource-id="" class="android.widget.FrameLayout" package="com.example.coolstory" content-desc="" checkable="false" checked="false" clickable="false" enabled="true" bounds="[7,19][37,55]">
          <node index="0" text="" resource-id="android:id/home" class="android.widget.ImageView" package="com.example.coolstory" content-desc="" checkable="false" checked="false" clickable="false" enabled="true" bounds="[10,25][34,49]" />
        </node>
        <node index="1" text="" resource-id="" class="android.widget.LinearLayout" package="com.example.coolstory" content-desc="" checkable="false" checked="false" clickable="false" enabled="true" bounds="[37,19][105,55]">
          <node index="0" text="" resource-id="" class="android.widget.LinearLayout" package="com.example.coolstory" content-desc="" checkable="false" checked="false" clickable="false" enabled="true" bounds="[37,27][99,46]">
            <node index="0" text="Cool Story" resource-id="android:id/action_bar_title" class="android.widget.TextView" package="com.example.coolstory" content-desc="" checkable="false" checked="false" clickable="false" enabled="true" bounds="[37,27][99,46]" />
          </node>
        </node>
      </node>
      <node index="2" text="" resource-id="android:id/content" class="android.widget.FrameLayout" package="com.example.coolstory" content-desc="" checkable="false" checked="false" clickable="false" enabled="true" bounds="[0,55][480,800]">
        <node index="0" text="Start" resource-id="com.example.coolstory:id/start" class="android.widget.Button" package="com.example.coolstory" content-desc="" checkable="false" checked="false" clickable="true" enabled="true" bounds="[20,100][220,160]" />
        <node index="1" text="Don't stop" resource-id="com.example.coolstory:id/stop" class="android.widget.Button" package="com.example.coolstory" content-desc="stop button primary" checkable="false" checked="false" clickable="true" enabled="true" bounds="[20,180][220,240]" />
        <node index="2" text="Settings" resource-id="com.example.coolstory:id/settings" class="android.widget.Button" package="com.example.coolstory" content-desc="" checkable="false" checked="false" clickable="true" enabled="false" bounds="[20,260][220,320]" />
        <node index="3" text="Remember me" resource-id="com.example.coolstory:id/remember" class="android.widget.CheckBox" package="com.example.coolstory" content-desc="" checkable="true" checked="false" clickable="true" enabled="true" bounds="[20,340][220,400]" />
      </node>
    </node>
  </node>
</hierarchy>
"""

# Same layout after "Remember me" was checked and "Start" went away
COOLSTORY_XML_AFTER_START = COOLSTORY_XML.replace(
    '        <node index="0" text="Start" resource-id="com.example.coolstory:id/start" class="android.widget.Button" package="com.example.coolstory" content-desc="" checkable="false" checked="false" clickable="true" enabled="true" bounds="[20,100][220,160]" />\n',
    '',
).replace(
    'class="android.widget.CheckBox" package="com.example.coolstory" content-desc="" checkable="true" checked="false"',
    'class="android.widget.CheckBox" package="com.example.coolstory" content-desc="" checkable="true" checked="true"',
)

ACTION_BAR_PATH = (0, 0, 1)
DERP_PATH = (0, 0, 0)
BUTTON_PATHS = [(0, 0, 2, 0), (0, 0, 2, 1), (0, 0, 2, 2)]


class RecordingChannel(BaseActionChannel):
    """Action channel that serves queued dumps and records everything else."""

    def __init__(self, dumps: Optional[List[str]] = None, result: Any = True):
        self.dumps = list(dumps or [])
        self.result = result
        self.sent: List[Tuple[RoutingAction, tuple]] = []

    def send_action(self, action: RoutingAction, *args: Any) -> Any:
        self.sent.append((action, args))
        if action is RoutingAction.GET_UI_XML:
            return self.dumps.pop(0)
        return self.result

    def actions(self, action: RoutingAction) -> List[tuple]:
        return [args for sent, args in self.sent if sent is action]


@pytest.fixture
def coolstory_xml() -> str:
    return COOLSTORY_XML


@pytest.fixture
def snapshot() -> Snapshot:
    return Snapshot(COOLSTORY_XML)


@pytest.fixture
def channel() -> RecordingChannel:
    return RecordingChannel(dumps=[COOLSTORY_XML, COOLSTORY_XML_AFTER_START])


@pytest.fixture
def screen(channel: RecordingChannel) -> Screen:
    return Screen(channel)
