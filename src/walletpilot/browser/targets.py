"""Resolve the Chrome DevTools Protocol target id of a page.

The target id survives across client processes, unlike Playwright object
identity, so an automation client that restarts can reattach to the same
tab through the CDP endpoint.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from playwright.async_api import BrowserContext, Page

logger = logging.getLogger(__name__)


async def resolve_target_id(context: BrowserContext, page: Page) -> str:
    """Open a CDP session on *page*, read its target info and detach."""
    session = await context.new_cdp_session(page)
    try:
        info = await session.send("Target.getTargetInfo")
        target_id = info["targetInfo"]["targetId"]
    finally:
        await session.detach()
    logger.debug("Resolved target id %s for %s", target_id, page.url)
    return target_id
