"""
Per-event-kind action table.

Both the replay dispatcher and the script exporter read this table, so a
replayed session and its exported script perform the same calls.
"""

from dataclasses import dataclass
from typing import Callable, Dict, Optional

from models import (
    ClickEvent, EventKind, InputEvent, KeydownEvent, RecordedEvent, ScrollEvent
)

SCROLL_JS = "([x, y]) => window.scrollTo(x, y)"


@dataclass(frozen=True)
class EventAction:
    kind: EventKind
    handler: Optional[str]  # ReplayEngine coroutine method; None means navigation only
    render: Callable[[RecordedEvent], Optional[str]]


def render_navigation(url: str) -> str:
    return f"page.goto({url!r})"


def _render_click(event: ClickEvent) -> str:
    return f"page.click({event.selector!r})"


def _render_input(event: InputEvent) -> str:
    return f"page.fill({event.selector!r}, {event.value!r})"


def _render_scroll(event: ScrollEvent) -> str:
    return f"page.evaluate({SCROLL_JS!r}, [{event.x}, {event.y}])"


def _render_keydown(event: KeydownEvent) -> Optional[str]:
    if not event.replayable:
        return None
    return f"page.keyboard.press({event.key!r})"


EVENT_ACTIONS: Dict[EventKind, EventAction] = {
    EventKind.NAVIGATE: EventAction(EventKind.NAVIGATE, None, lambda event: None),
    EventKind.CLICK: EventAction(EventKind.CLICK, "_do_click", _render_click),
    EventKind.INPUT: EventAction(EventKind.INPUT, "_do_input", _render_input),
    EventKind.SCROLL: EventAction(EventKind.SCROLL, "_do_scroll", _render_scroll),
    EventKind.KEYDOWN: EventAction(EventKind.KEYDOWN, "_do_keydown", _render_keydown),
}


def action_for(event: RecordedEvent) -> EventAction:
    return EVENT_ACTIONS[EventKind(event.kind)]


def needs_navigation(event: RecordedEvent, current_url: Optional[str]) -> bool:
    """Explicit navigate events always navigate; others only when the URL changed."""
    if event.kind == EventKind.NAVIGATE:
        return True
    return bool(event.page_url) and event.page_url != current_url
