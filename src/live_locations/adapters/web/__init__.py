"""Web adapters for sharing locations on a live map."""

from live_locations.adapters.web.broadcasters import PubSubMessagePublisher
from live_locations.adapters.web.pyview_app import PyViewWebAdapter
from live_locations.adapters.web.timers import AsyncioTimerScheduler

__all__ = ["AsyncioTimerScheduler", "PubSubMessagePublisher", "PyViewWebAdapter"]
