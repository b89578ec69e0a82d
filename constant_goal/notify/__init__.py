"""Check-in notifications

The operating system delivers the actual reminders. This package only
defines what the goal engine asks of it and how its signals come back:

    base.py: TriggerScheduler contract, TriggerRequest, in-memory scheduler
    dispatcher.py: Routes "fired" and "answered" signals to the live store
"""

from constant_goal.notify.base import (
    InMemoryTriggerScheduler,
    TriggerRequest,
    TriggerScheduler,
)
from constant_goal.notify.dispatcher import SignalDispatcher

__all__ = [
    "InMemoryTriggerScheduler",
    "SignalDispatcher",
    "TriggerRequest",
    "TriggerScheduler",
]
