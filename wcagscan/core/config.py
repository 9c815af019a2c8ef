"""Scan configuration: wait budgets, scanner options, WAVE credentials."""
from __future__ import annotations

import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Mapping

import yaml

from .errors import ConfigLoadError

DEFAULT_AXE_TAGS = ("wcag2a", "wcag2aa", "wcag21aa", "wcag22aa")
DEFAULT_AXE_RULES = (
    "image-alt",
    "label",
    "label-title-only",
    "input-button-name",
    "button-name",
    "link-name",
    "color-contrast",
    "aria-allowed-attr",
)


@dataclass(frozen=True)
class ScanConfig:
    """Options passed explicitly into every scan call.

    settle_ms: pause after navigation so client-rendered pages can hydrate.
    content_wait_ms: max time to poll for a minimally interactive DOM.
    navigation_timeout_ms / fallback_navigation_timeout_ms: networkidle, then domcontentloaded.
    min_target_size: CSS px below which an interactive element fails WCAG 2.5.8.
    axe_rules: when non-empty, axe runs only these rules; otherwise it runs by axe_tags.
    """

    settle_ms: int = 8000
    content_wait_ms: int = 30000
    navigation_timeout_ms: int = 60000
    fallback_navigation_timeout_ms: int = 30000
    min_target_size: int = 24
    axe_tags: tuple[str, ...] = DEFAULT_AXE_TAGS
    axe_rules: tuple[str, ...] = DEFAULT_AXE_RULES
    wave_api_key: str | None = None
    wave_api_url: str = "https://wave.webaim.org/api/request"
    wave_report_type: int = 2
    request_timeout_s: float = 60.0
    lighthouse_bin: str = "lighthouse"
    lighthouse_max_wait_ms: int = 45000
    lighthouse_timeout_s: float = 300.0
    headless: bool = True
    viewport_width: int = 1280
    viewport_height: int = 720

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> ScanConfig:
        return cls().with_env(environ)

    def with_env(self, environ: Mapping[str, str] | None = None) -> ScanConfig:
        """Overlay the supported environment variables on top of this config."""
        env = os.environ if environ is None else environ
        changes: dict[str, Any] = {}

        settle = _env_ms(env, "A11Y_SETTLE_MS")
        if settle is not None:
            changes["settle_ms"] = settle
        content_wait = _env_ms(env, "A11Y_CONTENT_WAIT_MS")
        if content_wait is not None:
            changes["content_wait_ms"] = content_wait
        max_wait = _env_ms(env, "LIGHTHOUSE_MAX_WAIT_MS")
        if max_wait is not None:
            changes["lighthouse_max_wait_ms"] = max_wait

        key = env.get("WAVE_API_KEY", "").strip()
        if key:
            changes["wave_api_key"] = key
        lighthouse_bin = env.get("LIGHTHOUSE_BIN", "").strip()
        if lighthouse_bin:
            changes["lighthouse_bin"] = lighthouse_bin

        return replace(self, **changes) if changes else self


def load_config(path: Path | None = None, environ: Mapping[str, str] | None = None) -> ScanConfig:
    """Build a ScanConfig from defaults, then an optional YAML file, then the environment."""
    config = ScanConfig()
    if path is not None:
        config = replace(config, **_read_config_file(path))
    return config.with_env(environ)


_FIELD_NAMES = {f.name for f in fields(ScanConfig)}
_TUPLE_FIELDS = {"axe_tags", "axe_rules"}


def _read_config_file(path: Path) -> dict[str, Any]:
    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise ConfigLoadError(f"{path}: cannot read config file ({e.strerror or e})") from e
    except yaml.YAMLError as e:
        raise ConfigLoadError(f"{path}: invalid YAML: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigLoadError(f"{path}: expected a YAML mapping at top level")

    unknown = sorted(set(data) - _FIELD_NAMES)
    if unknown:
        raise ConfigLoadError(f"{path}: unknown config keys: {', '.join(unknown)}")

    values: dict[str, Any] = {}
    for key, value in data.items():
        if key in _TUPLE_FIELDS:
            if not isinstance(value, list):
                raise ConfigLoadError(f"{path}: '{key}' must be a list")
            value = tuple(str(v) for v in value)
        values[key] = value
    return values


def _env_ms(env: Mapping[str, str], name: str) -> int | None:
    """Parse a non-negative millisecond value; unparsable values count as 0."""
    raw = env.get(name)
    if raw is None:
        return None
    try:
        return max(0, int(raw))
    except ValueError:
        return 0
