from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from typing import Annotated, Any, Dict, List, Literal, Optional, Union
from enum import Enum


class EventKind(str, Enum):
    NAVIGATE = "navigate"
    CLICK = "click"
    INPUT = "input"
    SCROLL = "scroll"
    KEYDOWN = "keydown"


# Keys the recorder captures and replay presses
REPLAYABLE_KEYS = ("Enter", "Tab", "Escape")


class _WireModel(BaseModel):
    """Accepts both the recorder's wire names and the Python field names."""
    model_config = ConfigDict(populate_by_name=True)


# ============ Recorded events ============

class _EventBase(_WireModel):
    timestamp: int = Field(alias="t")
    page_url: str = Field(alias="url")


def _round_coordinate(value):
    # Scroll offsets are fractional on zoomed and HiDPI pages
    if isinstance(value, float):
        return round(value)
    return value


class NavigateEvent(_EventBase):
    kind: Literal["navigate"] = Field("navigate", alias="type")


class ClickEvent(_EventBase):
    kind: Literal["click"] = Field("click", alias="type")
    selector: str
    button: Optional[int] = None
    x: Optional[int] = None
    y: Optional[int] = None

    @field_validator("x", "y", mode="before")
    @classmethod
    def round_coordinates(cls, value):
        return _round_coordinate(value)


class InputEvent(_EventBase):
    kind: Literal["input"] = Field("input", alias="type")
    selector: str
    value: str = ""


class ScrollEvent(_EventBase):
    kind: Literal["scroll"] = Field("scroll", alias="type")
    x: int
    y: int

    @field_validator("x", "y", mode="before")
    @classmethod
    def round_coordinates(cls, value):
        return _round_coordinate(value)


class KeydownEvent(_EventBase):
    kind: Literal["keydown"] = Field("keydown", alias="type")
    key: str
    selector: Optional[str] = None

    @property
    def replayable(self) -> bool:
        return self.key in REPLAYABLE_KEYS


RecordedEvent = Annotated[
    Union[NavigateEvent, ClickEvent, InputEvent, ScrollEvent, KeydownEvent],
    Field(discriminator="kind"),
]


# ============ Sessions ============

class Session(_WireModel):
    name: str
    events: List[RecordedEvent] = []
    scrape_requested: bool = Field(False, alias="scrapeRequested")
    dom_snapshot: Optional[str] = Field(None, alias="domSnapshot")
    created_at: Optional[int] = Field(None, alias="createdAt")  # epoch ms, set by the store

    @model_validator(mode="after")
    def _check_capture_order(self):
        previous = None
        for index, event in enumerate(self.events):
            if previous is not None and event.timestamp < previous:
                raise ValueError(
                    f"event {index} timestamp {event.timestamp} is earlier than {previous}"
                )
            previous = event.timestamp
        return self

    def last_url(self) -> Optional[str]:
        """URL of the last event that carries one."""
        for event in reversed(self.events):
            if event.page_url:
                return event.page_url
        return None

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class SessionSummary(BaseModel):
    """Shape returned by get_session_info."""
    name: str
    eventCount: int
    scrapeRequested: bool
    createdAt: Optional[int] = None
    events: List[Dict[str, Any]] = []

    @classmethod
    def from_session(cls, session: Session) -> "SessionSummary":
        return cls(
            name=session.name,
            eventCount=len(session.events),
            scrapeRequested=session.scrape_requested,
            createdAt=session.created_at,
            events=[
                {
                    "index": i,
                    "type": e.kind,
                    "url": e.page_url,
                    "selector": getattr(e, "selector", None),
                    "timestamp": e.timestamp,
                }
                for i, e in enumerate(session.events)
            ],
        )


# ============ Results ============

class ApiFastPathResult(_WireModel):
    hit: bool
    data: Any = None
    status: Optional[int] = None
    content_type: Optional[str] = Field(None, alias="contentType")
    is_text: Optional[bool] = Field(None, alias="isText")

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class ScrapedLink(BaseModel):
    text: str
    href: str


class ScrapeResult(_WireModel):
    url: str
    title: str = ""
    headings: List[str] = []
    links: List[ScrapedLink] = []
    inputs: List[Dict[str, Any]] = []
    buttons: List[Dict[str, Any]] = []
    text_content: str = Field("", alias="textContent")
    timestamp: int

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class ReplayResult(_WireModel):
    ok: bool
    scraped: Optional[str] = None
    error: Optional[str] = None
    fast_path: bool = Field(False, alias="fastPath")
    data: Any = None


# ============ Network capture ============

class NetworkRequest(_WireModel):
    url: str
    method: str = "GET"
    headers: Dict[str, Any] = {}
    body: Any = None
    timestamp: int = 0
    duration: int = 0
    status: Optional[int] = None
    status_text: Optional[str] = Field(None, alias="statusText")
    response_headers: Optional[Dict[str, str]] = Field(None, alias="responseHeaders")
    response_body: Any = Field(None, alias="responseBody")
    error: Optional[str] = None


# ============ Request bodies ============

class SaveSessionRequest(_WireModel):
    name: Optional[str] = None
    events: Optional[List[Dict[str, Any]]] = None  # validated as events when the Session is built
    scrape_requested: bool = Field(False, alias="scrapeRequested")
    dom_snapshot: Optional[str] = Field(None, alias="domSnapshot")


class AnalyzeNetworkRequest(BaseModel):
    requests: List[NetworkRequest]
