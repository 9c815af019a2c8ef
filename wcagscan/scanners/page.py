"""Navigation and readiness waits shared by the page-based engines."""
from __future__ import annotations

import logging

from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import Page
from playwright.sync_api import TimeoutError as PlaywrightTimeoutError

from ..core.config import ScanConfig

logger = logging.getLogger(__name__)

INTERACTIVE_SELECTOR = (
    'a[href], button, [role="button"], input:not([type="hidden"]), select, textarea, '
    '[tabindex]:not([tabindex="-1"])'
)

_CONTENT_READY_JS = """() => {
  const bodyLen = document.body ? document.body.innerHTML.length : 0;
  const found = document.querySelectorAll(
    'a[href], button, [role="button"], input:not([type="hidden"]), [tabindex]:not([tabindex="-1"]), '
    + 'select, textarea, [role="link"], [role="tab"], nav, header, main, footer, h1, h2, h3, img'
  ).length;
  return bodyLen > 500 && found >= 2;
}"""


def navigate(page: Page, url: str, config: ScanConfig) -> bool:
    """Load `url` and wait until the page looks usable.

    Best effort: timeouts are logged and the caller scans whatever DOM exists.
    Returns False when neither navigation attempt succeeded.
    """
    loaded = _goto(page, url, config)

    if config.settle_ms > 0:
        page.wait_for_timeout(config.settle_ms)

    if config.content_wait_ms > 0:
        try:
            page.wait_for_function(_CONTENT_READY_JS, timeout=config.content_wait_ms)
        except PlaywrightTimeoutError:
            logger.warning(
                "%s: page not content-ready after %d ms, scanning current DOM",
                url, config.content_wait_ms,
            )
    return loaded


def _goto(page: Page, url: str, config: ScanConfig) -> bool:
    try:
        page.goto(url, wait_until="networkidle", timeout=config.navigation_timeout_ms)
        return True
    except PlaywrightError as e:
        logger.info("%s: networkidle navigation failed (%s), retrying with domcontentloaded", url, e)

    try:
        page.goto(url, wait_until="domcontentloaded", timeout=config.fallback_navigation_timeout_ms)
        return True
    except PlaywrightError as e:
        logger.warning("%s: navigation failed (%s), scanning whatever loaded", url, e)
        return False
