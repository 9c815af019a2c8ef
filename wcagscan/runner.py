"""Sequential batch orchestration: every (url, engine) job runs in isolation."""
from __future__ import annotations

import logging
from contextlib import ExitStack
from dataclasses import dataclass

from playwright.sync_api import Browser
from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import sync_playwright
from tqdm import tqdm

from .core.config import ScanConfig
from .core.errors import ScanError, WaveThresholdError
from .core.models import Engine, ScanSession
from .report.writer import ReportPaths, ReportWriter
from .scanners.axe import run_axe_scan
from .scanners.lighthouse import run_lighthouse_scan
from .scanners.tree import run_tree_scan
from .scanners.wave import run_wave_api_scan

logger = logging.getLogger(__name__)

BATCH_ENGINES = (Engine.AXE, Engine.TREE, Engine.LIGHTHOUSE, Engine.WAVE_API)
PAGE_ENGINES = frozenset({Engine.AXE, Engine.TREE})

STATUS_PASS = "Pass"
STATUS_FAIL = "Fail"
STATUS_ERROR = "Error"


@dataclass
class ScanOutcome:
    url: str
    engine: Engine
    status: str
    findings: int = 0
    actionable: int = 0
    error: str = ""
    report: ReportPaths | None = None

    @property
    def failed(self) -> bool:
        return self.status != STATUS_PASS

    def line(self) -> str:
        label = self.engine.display_name
        if self.status == STATUS_ERROR:
            return f"{label}: {self.url} -> {self.status}: {self.error}"
        text = f"{label}: {self.url} -> {self.status} ({self.actionable} actionable, {self.findings} total)"
        if self.report is not None:
            text += f". Report: {self.report.html}"
        return text


def scan_page(engine: Engine, browser: Browser, url: str, config: ScanConfig, actionable_only: bool) -> ScanSession:
    """Run a page-based engine in a fresh browser context, closed whatever happens."""
    context = browser.new_context(viewport={"width": config.viewport_width, "height": config.viewport_height})
    try:
        page = context.new_page()
        if engine is Engine.AXE:
            return run_axe_scan(page, url, config, actionable_only=actionable_only)
        return run_tree_scan(page, url, config)
    finally:
        context.close()


def scan_one(
    url: str,
    engine: Engine,
    config: ScanConfig,
    browser: Browser | None = None,
    actionable_only: bool = False,
) -> ScanSession:
    if engine in PAGE_ENGINES:
        if browser is None:
            raise ScanError(f"{engine.display_name} needs a browser")
        return scan_page(engine, browser, url, config, actionable_only)
    if engine is Engine.LIGHTHOUSE:
        return run_lighthouse_scan(url, config)
    if engine is Engine.WAVE_API:
        return run_wave_api_scan(url, config)
    raise ScanError(f"engine {engine.value} cannot run in a batch")


def run_job(
    url: str,
    engine: Engine,
    config: ScanConfig,
    writer: ReportWriter,
    browser: Browser | None = None,
    actionable_only: bool = False,
) -> ScanOutcome:
    """One isolated job. Any failure becomes an Error outcome instead of propagating."""
    try:
        return _scan_and_write(url, engine, config, writer, browser, actionable_only)
    except (ScanError, PlaywrightError) as e:
        logger.error("%s: %s scan failed: %s", url, engine.display_name, e)
        return ScanOutcome(url, engine, STATUS_ERROR, error=str(e))
    except Exception as e:
        logger.exception("%s: %s job crashed", url, engine.display_name)
        return ScanOutcome(url, engine, STATUS_ERROR, error=f"{type(e).__name__}: {e}")


def _scan_and_write(
    url: str,
    engine: Engine,
    config: ScanConfig,
    writer: ReportWriter,
    browser: Browser | None,
    actionable_only: bool,
) -> ScanOutcome:
    suffix = "-actionable" if actionable_only and engine is Engine.AXE else ""
    try:
        session = scan_one(url, engine, config, browser, actionable_only)
    except WaveThresholdError as e:
        # fail-with-data: the report is still written
        logger.error("%s: %s", url, e)
        if e.session is None:
            return ScanOutcome(url, engine, STATUS_FAIL, error=str(e))
        report = writer.write(e.session)
        return ScanOutcome(
            url, engine, STATUS_FAIL, len(e.session.findings), len(e.session.actionable), error=str(e), report=report
        )

    report = writer.write(session, suffix=suffix)
    status = STATUS_FAIL if session.has_actionable() else STATUS_PASS
    return ScanOutcome(url, engine, status, len(session.findings), len(session.actionable), report=report)


def _launch_browser(stack: ExitStack, config: ScanConfig) -> tuple[Browser | None, str | None]:
    """Returns (browser, error). The browser is closed when `stack` unwinds."""
    try:
        playwright = stack.enter_context(sync_playwright())
        browser = playwright.chromium.launch(headless=config.headless)
    except Exception as e:
        logger.error("cannot launch Chromium: %s", e)
        return None, f"browser launch failed: {e}"
    stack.callback(browser.close)
    return browser, None


def run_batch(
    urls: list[str],
    engines: list[Engine],
    config: ScanConfig,
    writer: ReportWriter,
    actionable_only: bool = False,
    echo: bool = True,
) -> list[ScanOutcome]:
    """Scan every url with every engine, strictly in input order.

    If Chromium cannot start, the page-engine jobs become Error outcomes and
    the other engines still run. With `echo`, one line per outcome is printed
    as jobs finish.
    """
    jobs = [(url, engine) for url in urls for engine in engines]
    outcomes: list[ScanOutcome] = []

    with ExitStack() as stack:
        browser, launch_error = None, None
        if any(engine in PAGE_ENGINES for engine in engines):
            browser, launch_error = _launch_browser(stack, config)

        for url, engine in tqdm(jobs, desc="scanning", unit="scan", disable=len(jobs) < 2):
            if engine in PAGE_ENGINES and launch_error:
                outcome = ScanOutcome(url, engine, STATUS_ERROR, error=launch_error)
            else:
                outcome = run_job(url, engine, config, writer, browser, actionable_only)
            if echo:
                tqdm.write(outcome.line())
            outcomes.append(outcome)

    return outcomes


def format_summary_table(outcomes: list[ScanOutcome]) -> str:
    url_width = min(60, max([20] + [len(o.url) for o in outcomes]))
    engine_width = max([12] + [len(o.engine.display_name) for o in outcomes])
    status_width = 10
    sep = "-" * (url_width + engine_width + status_width + 10)

    lines = [sep, f"| {'URL':<{url_width}} | {'Engine':<{engine_width}} | {'Status':<{status_width}} |", sep]
    for o in outcomes:
        url = o.url if len(o.url) <= url_width else o.url[: url_width - 3] + "..."
        status = o.status if o.status != STATUS_ERROR else f"{o.status}: {o.error}"
        if len(status) > status_width:
            status = status[: status_width - 2] + ".."
        lines.append(f"| {url:<{url_width}} | {o.engine.display_name:<{engine_width}} | {status:<{status_width}} |")
    lines.append(sep)
    return "\n".join(lines)
