from __future__ import annotations

import json
import logging
import shutil
import subprocess
import tempfile
from pathlib import Path

from ..adapters.lighthouse import adapt_lighthouse_report
from ..core.config import ScanConfig
from ..core.errors import ExternalServiceError, UnsupportedCapabilityError
from ..core.models import Engine, ScanSession, utc_timestamp

logger = logging.getLogger(__name__)

CHROME_FLAGS = ("--headless=new", "--no-sandbox", "--disable-dev-shm-usage")


def resolve_lighthouse(config: ScanConfig) -> list[str] | None:
    """Command prefix for the Lighthouse CLI: the configured binary, else `npx lighthouse`."""
    found = shutil.which(config.lighthouse_bin)
    if found:
        return [found]
    npx = shutil.which("npx")
    if npx:
        return [npx, "--yes", "lighthouse"]
    return None


def build_lighthouse_cmd(prefix: list[str], url: str, config: ScanConfig, artifacts_dir: Path | None = None) -> list[str]:
    cmd = [
        *prefix,
        url,
        "--output=json",
        "--output-path=stdout",
        "--only-categories=accessibility",
        f"--max-wait-for-load={config.lighthouse_max_wait_ms}",
        "--chrome-flags=" + " ".join(CHROME_FLAGS),
        "--quiet",
    ]
    if artifacts_dir is not None:
        # gather + audit in one run, keeping the raw artifacts on disk
        cmd += [f"--gather-mode={artifacts_dir}", f"--audit-mode={artifacts_dir}"]
    return cmd


def run_lighthouse(url: str, config: ScanConfig) -> tuple[dict, dict | None]:
    """Run Lighthouse (accessibility only). Returns (lhr, artifacts or None)."""
    prefix = resolve_lighthouse(config)
    if prefix is None:
        raise UnsupportedCapabilityError(
            f"lighthouse binary '{config.lighthouse_bin}' not found and npx is not available"
        )

    with tempfile.TemporaryDirectory(prefix="wcagscan-lh-") as tmp:
        artifacts_dir = Path(tmp)
        stdout, error = _run_cli(build_lighthouse_cmd(prefix, url, config, artifacts_dir), config.lighthouse_timeout_s)
        if stdout is None:
            raise ExternalServiceError(f"Lighthouse failed for {url}: {error}")
        try:
            lhr = json.loads(stdout)
        except json.JSONDecodeError as e:
            raise ExternalServiceError(f"Lighthouse returned invalid JSON for {url}: {e}") from e
        artifacts = _read_artifacts(artifacts_dir / "artifacts.json")

    if lhr.get("runtimeError"):
        err = lhr["runtimeError"]
        raise ExternalServiceError(f"Lighthouse runtime error: {err.get('code')}: {err.get('message')}", payload=lhr)
    return lhr, artifacts


def run_lighthouse_scan(url: str, config: ScanConfig) -> ScanSession:
    timestamp = utc_timestamp()
    lhr, artifacts = run_lighthouse(url, config)
    if artifacts is None:
        logger.info("%s: no Lighthouse artifacts, WCAG tags come from the static audit map", url)
    score, findings = adapt_lighthouse_report(lhr, artifacts)
    return ScanSession(
        url=url,
        engine=Engine.LIGHTHOUSE,
        timestamp=timestamp,
        findings=findings,
        summary=score,
    )


def _run_cli(cmd: list[str], timeout: float) -> tuple[str | None, str | None]:
    """Return (stdout, None) on success, or (None, reason) on failure."""
    logger.debug("running %s", " ".join(cmd))
    try:
        result = subprocess.run(cmd, capture_output=True, text=True, timeout=timeout)
    except FileNotFoundError:
        return None, "lighthouse binary not found"
    except subprocess.TimeoutExpired:
        return None, f"timed out after {timeout:.0f}s"
    except OSError as e:
        return None, f"OS error: {e}"

    if result.returncode != 0:
        # Lighthouse can exit non-zero yet still print a usable report
        if result.stdout.strip().startswith("{"):
            return result.stdout, None
        stderr = result.stderr.strip()[-300:]
        return None, f"exit {result.returncode} ({stderr or 'no output'})"
    return result.stdout, None


def _read_artifacts(path: Path) -> dict | None:
    try:
        with open(path) as f:
            return json.load(f)
    except FileNotFoundError:
        return None
    except (OSError, json.JSONDecodeError) as e:
        logger.warning("could not read Lighthouse artifacts %s: %s", path, e)
        return None
