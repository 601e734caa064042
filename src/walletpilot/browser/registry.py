"""Named-page registry for the shared browser session.

Maps externally chosen names to live pages and their CDP target ids.
Creation is serialized per name so that concurrent requests for a new
name produce exactly one page, and an entry disappears as soon as its
page closes, whether the close came from :meth:`PageRegistry.close`, a
script, or the user clicking the tab's X.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Awaitable, Callable

from walletpilot.exceptions import InvalidPageNameError, PageCreationTimeoutError, PageNotFoundError

if TYPE_CHECKING:
    from playwright.async_api import Page

logger = logging.getLogger(__name__)

MAX_NAME_LENGTH = 256
DEFAULT_CREATE_TIMEOUT = 30.0

PageFactory = Callable[[], Awaitable["Page"]]
TargetResolver = Callable[["Page"], Awaitable[str]]


def validate_page_name(name: object) -> str:
    """Return *name* if it is a usable page name.

    Raises:
        InvalidPageNameError: If *name* is not a string, is empty, or is
            longer than ``MAX_NAME_LENGTH`` characters.
    """
    if not isinstance(name, str):
        raise InvalidPageNameError(name, "name is required and must be a string")
    if len(name) == 0:
        raise InvalidPageNameError(name, "name cannot be empty")
    if len(name) > MAX_NAME_LENGTH:
        raise InvalidPageNameError(name, f"name must be {MAX_NAME_LENGTH} characters or less")
    return name


@dataclass
class PageHandle:
    """A registered page."""

    name: str
    target_id: str
    page: Page = field(repr=False)


class PageRegistry:
    """Owns the name → page mapping for one session.

    Args:
        new_page: Coroutine function opening a page in the shared context.
        resolve_target: Coroutine function returning a page's CDP target id.
        create_timeout: Seconds allowed for ``new_page`` before giving up.
    """

    def __init__(
        self,
        new_page: PageFactory,
        resolve_target: TargetResolver,
        create_timeout: float = DEFAULT_CREATE_TIMEOUT,
    ) -> None:
        self._new_page = new_page
        self._resolve_target = resolve_target
        self._create_timeout = create_timeout
        self._entries: dict[str, PageHandle] = {}
        self._locks: dict[str, asyncio.Lock] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, name: object) -> bool:
        return name in self._entries

    def names(self) -> list[str]:
        """Names of all live pages."""
        return [name for name in list(self._entries) if self._live(name) is not None]

    def get(self, name: str) -> PageHandle | None:
        return self._entries.get(name)

    async def get_or_create(self, name: str) -> PageHandle:
        """Return the handle for *name*, opening a page on first use.

        Raises:
            InvalidPageNameError: Before any page is touched, for bad names.
            PageCreationTimeoutError: If the browser stalls opening the page.
        """
        validate_page_name(name)

        existing = self._live(name)
        if existing is not None:
            return existing

        lock = self._locks.setdefault(name, asyncio.Lock())
        async with lock:
            # Another request may have created it while we waited.
            existing = self._live(name)
            if existing is not None:
                return existing

            try:
                page = await asyncio.wait_for(self._new_page(), self._create_timeout)
            except asyncio.TimeoutError as exc:
                logger.error("Page creation for %r timed out after %.0fs", name, self._create_timeout)
                raise PageCreationTimeoutError(self._create_timeout) from exc

            try:
                target_id = await self._resolve_target(page)
            except Exception:
                logger.error("Could not resolve target for page %r; closing it", name)
                await page.close()
                raise
            handle = PageHandle(name=name, target_id=target_id, page=page)
            self._entries[name] = handle
            page.on("close", lambda _page: self._forget(name, page))
            logger.info("Created page %r (target %s)", name, target_id)
            return handle

    async def close(self, name: str) -> None:
        """Close the page registered as *name* and drop the entry.

        Raises:
            PageNotFoundError: If *name* is not registered or its page is
                already closed; nothing changes.
        """
        handle = self._live(name)
        if handle is None:
            raise PageNotFoundError(name)
        await handle.page.close()
        self._forget(name, handle.page)
        logger.info("Closed page %r", name)

    async def close_all(self) -> None:
        """Close every registered page, ignoring pages that are already gone."""
        for name, handle in list(self._entries.items()):
            try:
                await handle.page.close()
            except Exception as e:
                logger.debug("Closing page %r failed (ignored): %s", name, e)
        self._entries.clear()
        self._locks.clear()

    def _live(self, name: str) -> PageHandle | None:
        handle = self._entries.get(name)
        if handle is None:
            return None
        if handle.page.is_closed():
            # Close event not delivered yet; treat as gone.
            self._forget(name, handle.page)
            return None
        return handle

    def _forget(self, name: str, page: Page) -> None:
        handle = self._entries.get(name)
        if handle is not None and handle.page is page:
            del self._entries[name]
            logger.debug("Registry entry %r removed", name)
        lock = self._locks.get(name)
        if lock is not None and not lock.locked() and name not in self._entries:
            del self._locks[name]
