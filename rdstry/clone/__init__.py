"""Clone lifecycle: ownership tags, status waiting and orchestration.

Classes:
    TagRegistry: Ownership tag pair creation and owned-resource discovery
    StatusWaiter: Bounded polling until a resource becomes available
    CloneLifecycle: Restore, query and teardown sequencing
"""

from __future__ import annotations

from .orchestrator import CloneLifecycle, RunOptions, RunReport
from .tags import TagRegistry
from .waiter import StatusWaiter, WaitResult, WaitStatus

__all__ = [
    "CloneLifecycle",
    "RunOptions",
    "RunReport",
    "StatusWaiter",
    "TagRegistry",
    "WaitResult",
    "WaitStatus",
]
