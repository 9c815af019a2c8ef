"""Page-based scanners against mocked Playwright pages (no browser required)."""
import json
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import TimeoutError as PlaywrightTimeoutError

from wcagscan.core.config import ScanConfig
from wcagscan.core.errors import UnsupportedCapabilityError
from wcagscan.core.models import Engine, TreeInventory
from wcagscan.scanners.axe import run_axe_scan
from wcagscan.scanners.page import navigate
from wcagscan.scanners.tree import run_tree_scan

FIXTURES = Path(__file__).parent / "fixtures"

_FAST = ScanConfig(settle_ms=0, content_wait_ms=0)


def _page(browser="chromium"):
    page = MagicMock()
    page.title.return_value = "Example Store"
    page.context.browser.browser_type.name = browser
    return page


# --- navigate ---

def test_navigate_falls_back_to_domcontentloaded():
    page = _page()
    page.goto.side_effect = [PlaywrightError("Timeout 60000ms exceeded"), None]
    assert navigate(page, "https://example.com/", _FAST) is True
    assert [c.kwargs["wait_until"] for c in page.goto.call_args_list] == ["networkidle", "domcontentloaded"]


def test_navigate_failure_is_not_raised():
    page = _page()
    page.goto.side_effect = PlaywrightError("net::ERR_NAME_NOT_RESOLVED")
    assert navigate(page, "https://example.invalid/", _FAST) is False


def test_navigate_waits_for_settle_and_content():
    page = _page()
    page.wait_for_function.side_effect = PlaywrightTimeoutError("not ready")
    assert navigate(page, "https://example.com/", ScanConfig(settle_ms=1500, content_wait_ms=2000)) is True
    page.wait_for_timeout.assert_called_once_with(1500)
    assert page.wait_for_function.call_args.kwargs["timeout"] == 2000


def test_navigate_zero_waits_skip_polling():
    page = _page()
    navigate(page, "https://example.com/", _FAST)
    page.wait_for_timeout.assert_not_called()
    page.wait_for_function.assert_not_called()


# --- tree scanner ---

def test_tree_scan_needs_chromium():
    with pytest.raises(UnsupportedCapabilityError, match="firefox"):
        run_tree_scan(_page("firefox"), "https://example.com/", _FAST)


def test_tree_scan_reads_full_ax_tree():
    tree = json.loads((FIXTURES / "ax_tree.json").read_text())
    client = MagicMock()
    client.send.side_effect = lambda method, *args: tree if method == "Accessibility.getFullAXTree" else {}
    page = _page()
    page.context.new_cdp_session.return_value = client

    session = run_tree_scan(page, "https://example.com/", _FAST)

    assert session.engine is Engine.TREE
    assert session.summary == TreeInventory(links=2, buttons=1, images=1, videos=1, audio=0, iframes=1)
    assert session.page_title == "Example Store"
    assert [c.args[0] for c in client.send.call_args_list] == ["Accessibility.enable", "Accessibility.getFullAXTree"]
    client.detach.assert_called_once()


def test_tree_scan_detaches_on_error():
    client = MagicMock()
    client.send.side_effect = PlaywrightError("Target closed")
    page = _page()
    page.context.new_cdp_session.return_value = client
    with pytest.raises(PlaywrightError):
        run_tree_scan(page, "https://example.com/", _FAST)
    client.detach.assert_called_once()


# --- axe scanner ---

_AXE_RESPONSE = {
    "violations": [{
        "id": "button-name",
        "impact": "critical",
        "description": "Ensure buttons have discernible text",
        "help": "Buttons must have discernible text",
        "helpUrl": "https://dequeuniversity.com/rules/axe/4.10/button-name",
        "tags": ["wcag2a", "wcag412"],
        "nodes": [{"target": ["button.icon"], "html": "<button class=\"icon\"></button>"}],
    }],
    "passes": [],
    "incomplete": [],
}


def test_axe_scan_appends_target_size_violation():
    page = _page()
    page.evaluate.return_value = [
        {"selector": "button.icon", "html": "<button class=\"icon\"></button>", "width": 16, "height": 16},
        {"selector": "#buy", "html": "<button id=\"buy\">Buy</button>", "width": 120, "height": 44},
    ]
    with patch("wcagscan.scanners.axe.Axe") as axe_cls:
        axe_cls.return_value.run.return_value.response = _AXE_RESPONSE
        session = run_axe_scan(page, "https://example.com/", _FAST)

    assert [f.identifier for f in session.findings] == ["button-name", "target-size-minimum"]
    options = axe_cls.return_value.run.call_args.kwargs["options"]
    assert options["runOnly"]["type"] == "rule"
    assert session.page_title == "Example Store"
    # the adapter must not mutate the library's response
    assert len(_AXE_RESPONSE["violations"]) == 1


def test_axe_scan_without_small_targets():
    page = _page()
    page.evaluate.return_value = []
    with patch("wcagscan.scanners.axe.Axe") as axe_cls:
        axe_cls.return_value.run.return_value.response = _AXE_RESPONSE
        session = run_axe_scan(page, "https://example.com/", _FAST)
    assert [f.identifier for f in session.findings] == ["button-name"]


def test_axe_scan_flags_unrendered_interactive_element():
    page = _page()
    page.evaluate.return_value = [
        {"selector": "a.skip-link", "html": "<a class=\"skip-link\" href=\"#main\">Skip</a>", "width": 0, "height": 0},
    ]
    with patch("wcagscan.scanners.axe.Axe") as axe_cls:
        axe_cls.return_value.run.return_value.response = {"violations": [], "incomplete": []}
        session = run_axe_scan(page, "https://example.com/", _FAST)

    assert [f.identifier for f in session.findings] == ["target-size-minimum"]
    assert session.findings[0].elements[0].selector == "a.skip-link"
    assert "0×0" in session.findings[0].actual
    script = page.evaluate.call_args.args[0]
    assert "return;" not in script
