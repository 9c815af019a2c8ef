from __future__ import annotations

import logging
import os
import sys
from pathlib import Path
from typing import Callable, Mapping

import requests
from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import Playwright
from playwright.sync_api import TimeoutError as PlaywrightTimeoutError

from ..adapters.wave import adapt_wave_response
from ..core.config import ScanConfig
from ..core.errors import ExternalServiceError, MissingCredentialError, WaveThresholdError
from ..core.models import Engine, ScanSession, utc_timestamp

logger = logging.getLogger(__name__)

WAVE_EXTENSION_ID = "jbbplnpkjmmeebjpijfedlgcdilocofh"


def run_wave_api_scan(url: str, config: ScanConfig, session: requests.Session | None = None) -> ScanSession:
    """One synchronous WAVE API request, no retry.

    Raises WaveThresholdError (carrying the response and the adapted session)
    when WAVE reports any error or contrast failure.
    """
    if not config.wave_api_key:
        raise MissingCredentialError("WAVE_API_KEY environment variable is required for WAVE API scans.")

    timestamp = utc_timestamp()
    http = session or requests.Session()
    params = {"key": config.wave_api_key, "reporttype": str(config.wave_report_type), "url": url}
    try:
        resp = http.get(
            config.wave_api_url,
            params=params,
            headers={"Accept": "application/json"},
            timeout=config.request_timeout_s,
        )
    except requests.RequestException as e:
        raise ExternalServiceError(f"WAVE API request failed: {e}") from e

    if not resp.ok:
        raise ExternalServiceError(f"WAVE API HTTP {resp.status_code}: {resp.reason}")
    try:
        data = resp.json()
    except ValueError as e:
        raise ExternalServiceError(f"WAVE API returned invalid JSON: {e}") from e
    if not isinstance(data, dict):
        raise ExternalServiceError(f"WAVE API returned {type(data).__name__}, expected a JSON object", payload=data)

    status = data.get("status") or {}
    if not status.get("success"):
        raise ExternalServiceError(status.get("error") or "WAVE API request failed.", payload=data)

    counts, findings = adapt_wave_response(data)
    scan = ScanSession(
        url=url,
        engine=Engine.WAVE_API,
        timestamp=timestamp,
        findings=findings,
        summary=counts,
        page_title=(data.get("statistics") or {}).get("pagetitle") or "",
    )
    if counts.error > 0 or counts.contrast > 0:
        raise WaveThresholdError(
            f"WAVE failures: errors={counts.error}, contrast={counts.contrast}. Require 0 for both.",
            payload=data,
            session=scan,
        )
    return scan


def _chrome_bases(environ: Mapping[str, str]) -> list[Path]:
    home = Path(environ.get("HOME") or environ.get("USERPROFILE") or Path.home())
    if sys.platform == "win32":
        return [Path(environ.get("LOCALAPPDATA", "")) / "Google" / "Chrome" / "User Data"]
    if sys.platform == "darwin":
        return [home / "Library" / "Application Support" / "Google" / "Chrome"]
    return [home / ".config" / "google-chrome", home / ".config" / "chromium"]


class WaveExtensionLocator:
    """Finds an unpacked WAVE extension: explicit path, $WAVE_EXTENSION_PATH, then Chrome profiles."""

    def __init__(self, extension_path: Path | None = None, environ: Mapping[str, str] | None = None) -> None:
        self._explicit_path = extension_path
        self._env = os.environ if environ is None else environ

    def detect(self) -> bool:
        return self.resolve() is not None

    def searched_locations(self) -> list[str]:
        locations: list[str] = []
        if self._explicit_path:
            locations.append(str(self._explicit_path))
        env_path = self._env.get("WAVE_EXTENSION_PATH")
        if env_path:
            locations.append(f"$WAVE_EXTENSION_PATH ({env_path})")
        locations.extend(f"{base} (Default, Profile *)" for base in _chrome_bases(self._env))
        return locations

    def resolve(self) -> Path | None:
        if self._explicit_path:
            return self._explicit_path if _is_extension_dir(self._explicit_path) else None

        env_path = self._env.get("WAVE_EXTENSION_PATH")
        if env_path and _is_extension_dir(Path(env_path)):
            return Path(env_path)

        for base in _chrome_bases(self._env):
            found = _search_chrome_profiles(base)
            if found:
                return found
        return None


def find_wave_extension(extension_path: Path | None = None, environ: Mapping[str, str] | None = None) -> Path | None:
    return WaveExtensionLocator(extension_path, environ).resolve()


def capture_wave_markup(
    playwright: Playwright,
    url: str,
    extension_path: Path,
    profile_dir: Path,
    config: ScanConfig,
    wait_for_user: Callable[[], None] | None = None,
) -> str:
    """Open `url` in Chromium with WAVE loaded and return the page HTML once the overlay is in.

    WAVE only evaluates when its toolbar button is clicked, so `wait_for_user`
    blocks until the operator has done that. Extensions need a headed browser.
    """
    profile_dir.mkdir(parents=True, exist_ok=True)
    context = playwright.chromium.launch_persistent_context(
        str(profile_dir),
        headless=False,
        args=[
            "--no-sandbox",
            f"--disable-extensions-except={extension_path}",
            f"--load-extension={extension_path}",
        ],
    )
    try:
        page = context.pages[0] if context.pages else context.new_page()
        try:
            page.goto(url, wait_until="domcontentloaded", timeout=config.fallback_navigation_timeout_ms)
        except PlaywrightError as e:
            logger.warning("%s: navigation failed (%s), continuing with current page", url, e)

        if wait_for_user is not None:
            wait_for_user()
        try:
            page.wait_for_selector("img.wave5icon", state="attached", timeout=config.content_wait_ms)
        except PlaywrightTimeoutError:
            logger.warning("%s: no WAVE icons found after %d ms; was Evaluate clicked?", url, config.content_wait_ms)
        return page.content()
    finally:
        context.close()


def _is_extension_dir(path: Path) -> bool:
    return (path / "manifest.json").is_file()


def _search_chrome_profiles(base: Path) -> Path | None:
    if not base.is_dir():
        return None
    profiles = sorted(p.name for p in base.iterdir() if p.name.startswith("Profile "))
    for profile in ["Default", *profiles]:
        ext_dir = base / profile / "Extensions" / WAVE_EXTENSION_ID
        if not ext_dir.is_dir():
            continue
        versions = sorted((v for v in ext_dir.iterdir() if v.is_dir()), key=_version_key, reverse=True)
        for version in versions:
            if _is_extension_dir(version):
                return version
    return None


def _version_key(path: Path) -> tuple:
    head = path.name.split("_")[0]
    parts = head.split(".")
    if all(p.isdigit() for p in parts):
        return (1, tuple(int(p) for p in parts))
    return (0, ())
