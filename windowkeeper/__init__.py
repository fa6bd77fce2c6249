from windowkeeper.core.keeper import WindowKeeper
from windowkeeper.core.errors import UnsupportedHostOperation, WindowNotFoundError
from windowkeeper.core.events import (
    HostEvent,
    TabActivated,
    TabAttached,
    TabDetached,
    TabRemoved,
    TabUpdated,
    WindowCreated,
    WindowFocusChanged,
    WindowRemoved,
)
from windowkeeper.core.types import (
    DEFAULT_NAME,
    LiveTab,
    LiveWindow,
    OpenResult,
    SavedWindow,
    SavedWindowEntry,
    TabRecord,
    UndoEntry,
    WindowStatus,
)
from windowkeeper.api.requests import RequestHandler
from windowkeeper.engine.reconciler import ReconciliationEngine
from windowkeeper.engine.matcher import windows_are_equal

__all__ = [
    "WindowKeeper",
    "RequestHandler",
    "ReconciliationEngine",
    "UnsupportedHostOperation",
    "WindowNotFoundError",
    "windows_are_equal",
    "DEFAULT_NAME",
    "LiveTab",
    "LiveWindow",
    "OpenResult",
    "SavedWindow",
    "SavedWindowEntry",
    "TabRecord",
    "UndoEntry",
    "WindowStatus",
    # Host events
    "HostEvent",
    "TabActivated",
    "TabAttached",
    "TabDetached",
    "TabRemoved",
    "TabUpdated",
    "WindowCreated",
    "WindowFocusChanged",
    "WindowRemoved",
]
