from __future__ import annotations

import logging

from axe_playwright_python.sync_playwright import Axe
from playwright.sync_api import Page

from ..adapters.axe import adapt_axe_results, target_size_violation
from ..core.config import ScanConfig
from ..core.models import Engine, ScanSession, utc_timestamp
from .page import INTERACTIVE_SELECTOR, navigate

logger = logging.getLogger(__name__)

# Selector: #id, else tag plus first class. Unrendered (0x0) elements are measured too.
_MEASURE_TARGETS_JS = """(selector) => {
  const out = [];
  document.querySelectorAll(selector).forEach((el) => {
    const rect = el.getBoundingClientRect();
    const cls = typeof el.className === 'string' ? el.className.trim().split(/\\s+/)[0] : '';
    out.push({
      selector: el.id ? '#' + el.id : el.tagName.toLowerCase() + (cls ? '.' + cls : ''),
      html: el.outerHTML.slice(0, 300),
      width: rect.width,
      height: rect.height,
    });
  });
  return out;
}"""


def axe_options(config: ScanConfig) -> dict:
    """runOnly by rule list when one is configured, else by WCAG tags."""
    if config.axe_rules:
        return {"runOnly": {"type": "rule", "values": list(config.axe_rules)}}
    return {"runOnly": {"type": "tag", "values": list(config.axe_tags)}}


def run_axe_scan(page: Page, url: str, config: ScanConfig, actionable_only: bool = False) -> ScanSession:
    timestamp = utc_timestamp()
    navigate(page, url, config)

    results = Axe().run(page, options=axe_options(config))
    response = dict(results.response)
    response["violations"] = list(response.get("violations", []))

    targets = page.evaluate(_MEASURE_TARGETS_JS, INTERACTIVE_SELECTOR)
    undersized = target_size_violation(targets, config.min_target_size)
    if undersized:
        logger.info("%s: %d interactive element(s) below %dpx", url, len(undersized["nodes"]), config.min_target_size)
        response["violations"].append(undersized)

    return ScanSession(
        url=url,
        engine=Engine.AXE,
        timestamp=timestamp,
        findings=adapt_axe_results(response, actionable_only=actionable_only),
        actionable_only=actionable_only,
        page_title=page.title(),
    )
