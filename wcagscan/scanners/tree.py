from __future__ import annotations

import logging

from playwright.sync_api import Page

from ..adapters.tree import adapt_ax_tree
from ..core.config import ScanConfig
from ..core.errors import UnsupportedCapabilityError
from ..core.models import Engine, ScanSession, utc_timestamp
from .page import navigate

logger = logging.getLogger(__name__)


def browser_name(page: Page) -> str | None:
    browser = page.context.browser
    if browser is None:
        return None
    return browser.browser_type.name


def run_tree_scan(page: Page, url: str, config: ScanConfig) -> ScanSession:
    """Walk the full accessibility tree over CDP. Chromium only."""
    name = browser_name(page)
    if name is not None and name != "chromium":
        raise UnsupportedCapabilityError(
            f"tree engine needs Chromium (CDP), got {name}; use --engine axe on other browsers"
        )

    timestamp = utc_timestamp()
    navigate(page, url, config)

    client = page.context.new_cdp_session(page)
    try:
        client.send("Accessibility.enable")
        result = client.send("Accessibility.getFullAXTree")
    finally:
        client.detach()

    nodes = result.get("nodes") or []
    logger.debug("%s: %d AX nodes", url, len(nodes))
    inventory, findings = adapt_ax_tree(nodes)
    return ScanSession(
        url=url,
        engine=Engine.TREE,
        timestamp=timestamp,
        findings=findings,
        summary=inventory,
        page_title=page.title(),
    )
