"""Structural matching of live windows against saved snapshots."""

from __future__ import annotations

import logging

from windowkeeper.core.types import LiveWindow, SavedWindow

logger = logging.getLogger(__name__)


def windows_are_equal(window: LiveWindow | None, snapshot: SavedWindow | None) -> bool:
    """
    Return True if ``window`` looks like a re-opening of ``snapshot``.

    Window ids do not survive a browser restart, so identity is inferred from
    tab URLs: the snapshot's URLs must be an exact, in-order prefix of the
    window's tabs. Extra trailing tabs are allowed; pinned state and titles are
    ignored. Private windows and empty snapshots never match.
    """
    if window is None or snapshot is None:
        return False
    if window.incognito:
        logger.debug("Window %s is private; not matching %r", window.id, snapshot.name)
        return False
    if not window.tabs or not snapshot.tabs:
        return False
    if len(window.tabs) < len(snapshot.tabs):
        return False
    for live_tab, saved_tab in zip(window.tabs, snapshot.tabs):
        if live_tab.url != saved_tab.url:
            return False
    logger.debug("Window %s matches %r", window.id, snapshot.name)
    return True
