"""Callbacks handed to the controller of the Active unit."""

from dataclasses import dataclass
from typing import Any, Callable, Mapping


@dataclass
class Handlers:
    """One set per activation.

    on_completed: store the unit's final state
    on_error: move the unit to the timeline and replace the queue with a
        failed feedback
    on_aborted: move the unit to the timeline and replace the queue with an
        aborted feedback for the named operation
    add_to_queue / add_to_timeline: append units
    complete_active: park the unit in the Pending slot; given units go to the
        front of the queue
    complete_active_and_pending: move Pending, then the unit, to the timeline;
        given units go to the front of the queue
    update_state: merge keys into the unit's state
    """
    on_completed: Callable[[Mapping[str, Any]], None]
    on_error: Callable[[str], None]
    on_aborted: Callable[[str], None]
    add_to_queue: Callable[..., None]
    add_to_timeline: Callable[..., None]
    complete_active: Callable[..., None]
    complete_active_and_pending: Callable[..., None]
    update_state: Callable[..., None]
    close: Callable[[], None] = lambda: None
