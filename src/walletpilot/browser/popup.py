"""Locate the extension's transient notification popup among open pages."""

from __future__ import annotations

from typing import TYPE_CHECKING, Iterable

if TYPE_CHECKING:
    from playwright.async_api import Page

# The extension opens confirmation surfaces at .../notification.html
NOTIFICATION_MARKER = "notification"


def find_notification_page(pages: Iterable[Page]) -> Page | None:
    """Return the first open page whose URL looks like a notification popup.

    Pure scan of the current pages: no waiting.  Pages are checked in the
    order given and the first match wins.
    """
    for page in pages:
        if NOTIFICATION_MARKER in page.url:
            return page
    return None


def action_surface(pages: Iterable[Page], home: Page) -> Page:
    """Notification popup if one is open, else the wallet *home* page."""
    return find_notification_page(pages) or home
