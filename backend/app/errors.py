"""
Error classes for the Browsy backend.

```
BrowsyError (base)
├── SessionNotFound
├── TransportError
└── ReplayError
    ├── ElementNotFound
    ├── NavigationTimeout
    └── ActionTimeout
```

A replay that raises any ReplayError is aborted and reported as
``{ok: false, error: <message>}``. An API fast-path miss is not an error;
it is a result with ``hit=False``.
"""

from typing import Optional


class BrowsyError(Exception):
    """Base exception for all Browsy errors."""


class SessionNotFound(BrowsyError):
    """The session name is unknown to the store."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Session not found: {name}")


class TransportError(BrowsyError):
    """Store I/O or network failure."""


class ReplayError(BrowsyError):
    """Base class for failures that abort a replay."""


class ElementNotFound(ReplayError):
    """Every selector resolution strategy was exhausted."""

    def __init__(self, action: str, selector: str, tried: Optional[list] = None):
        self.action = action
        self.selector = selector
        self.tried = tried or []
        super().__init__(f"Could not {action} selector: {selector}")


class NavigationTimeout(ReplayError):
    """Page did not reach DOM-content-loaded within the bound."""

    def __init__(self, url: str, timeout: float):
        self.url = url
        self.timeout = timeout
        super().__init__(f"Navigation to {url} timed out after {timeout:g}s")


class ActionTimeout(ReplayError):
    """A page action exceeded its bounded wait."""

    def __init__(self, action: str, detail: str = ""):
        self.action = action
        message = f"Action '{action}' timed out"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)
