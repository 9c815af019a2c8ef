import csv
import json
from datetime import datetime, timezone
from pathlib import Path

from wcagscan.adapters.axe import adapt_axe_results
from wcagscan.adapters.lighthouse import build_compliance_report
from wcagscan.adapters.tree import adapt_ax_tree
from wcagscan.adapters.wave import capture_to_findings, parse_capture
from wcagscan.core.models import AuditScore, Engine, Finding, ScanSession
from wcagscan.report.html import SECTION_TITLES, render_card, render_html, section
from wcagscan.report.markdown import render_markdown
from wcagscan.report.rows import COLUMNS, finding_rows, ticket_rows, write_csv
from wcagscan.report.ticket import INFORMATIONAL_STATUS, render_ticket, ticket_summary
from wcagscan.report.writer import ReportWriter, file_timestamp, url_slug

FIXTURES = Path(__file__).parent / "fixtures"
URL = "https://example.com/checkout"
TS = "2026-03-02T14:05:11+00:00"


def _axe_session(actionable_only=False):
    results = {
        "violations": [{
            "id": "image-alt",
            "impact": "critical",
            "description": "Ensure <img> elements have alternative text",
            "help": "Images must have alternative text",
            "helpUrl": "https://dequeuniversity.com/rules/axe/4.10/image-alt",
            "tags": ["wcag2a", "wcag111"],
            "nodes": [
                {"target": ["img.a"], "html": "<img class=\"a\">", "failureSummary": "No alt"},
                {"target": ["img.b"], "html": "<img class=\"b\">", "failureSummary": "No alt"},
            ],
        }],
        "incomplete": [{
            "id": "color-contrast",
            "impact": "serious",
            "description": "Ensure contrast is sufficient",
            "help": "Elements must meet minimum color contrast ratio thresholds",
            "tags": ["wcag2aa", "wcag143"],
            "nodes": [{"target": ["p.hero"], "html": "<p class=\"hero\">"}],
        }],
    }
    return ScanSession(
        url=URL,
        engine=Engine.AXE,
        timestamp=TS,
        findings=adapt_axe_results(results, actionable_only=actionable_only),
        actionable_only=actionable_only,
        page_title="Checkout",
    )


def _capture_session():
    markup = (FIXTURES / "wave_capture.html").read_text()
    return ScanSession(
        url=URL,
        engine=Engine.WAVE_CAPTURE,
        timestamp=TS,
        findings=capture_to_findings(parse_capture(markup)),
        page_title="Example Store | Checkout",
    )


def _tree_session():
    data = json.loads((FIXTURES / "ax_tree.json").read_text())
    inventory, findings = adapt_ax_tree(data["nodes"])
    return ScanSession(url=URL, engine=Engine.TREE, timestamp=TS, findings=findings, summary=inventory)


# --- html ---

def test_section_omits_empty_content():
    assert section("Actual", "") == ""
    assert section("Actual", "   ") == ""
    assert section("Actual", "—") == ""
    assert "Actual" in section("Actual", "No alt")


def test_card_omits_empty_sections():
    finding = Finding(engine=Engine.AXE, identifier="x", title="Title here", description="")
    card = render_card(1, finding, _axe_session())
    assert "Title here" in card
    assert ">Description<" not in card
    assert ">Where located<" not in card
    # WCAG number always renders, falling back to "Not mapped"
    assert "Not mapped" in card


def test_card_has_all_sections_when_filled():
    card = render_card(1, _axe_session().findings[0], _axe_session())
    for title in SECTION_TITLES:
        assert f">{title}<" in card


def test_card_carries_ticket_text_and_rule():
    session = _axe_session()
    card = render_card(1, session.findings[0], session)
    assert 'data-rule-id="image-alt"' in card
    assert 'data-actionable="true"' in card
    assert "data-ticket=\"[Axe-core][image-alt]" in card
    assert "Copy for JIRA" in card


def test_axe_html_has_severity_counts_and_rule_groups():
    page = render_html(_axe_session())
    assert "<strong>3</strong> finding(s)" in page
    assert "<strong>2 critical</strong>" in page
    assert "<code>image-alt</code>: 2 finding(s)" in page
    assert page.count('class="issue-card') == 3


def test_actionable_only_badge():
    page = render_html(_axe_session(actionable_only=True))
    assert "Actionable only" in page
    assert page.count('class="issue-card') == 2


def test_tree_html_shows_inventory():
    page = render_html(_tree_session())
    assert "<strong>2 links</strong>" in page
    assert "<strong>1 iframes</strong>" in page


def test_lighthouse_html_shows_score():
    session = ScanSession(url=URL, engine=Engine.LIGHTHOUSE, timestamp=TS, findings=[], summary=AuditScore(0.87))
    page = render_html(session)
    assert "Accessibility score: <strong>87</strong>" in page
    assert 'class="summary-box pass"' in page
    assert "No issues." in page


def test_capture_html_is_sectioned_by_tab():
    page = render_html(_capture_session())
    details = page.index('data-tab="Details"')
    contrast = page.index('data-tab="Contrast"')
    reference = page.index('data-tab="Reference"')
    assert details < contrast < reference


def test_html_escapes_snippets():
    page = render_html(_axe_session())
    assert "&lt;img class=&quot;a&quot;&gt;" in page


# --- rows ---

def test_one_row_per_element():
    rows = finding_rows(_axe_session())
    assert len(rows) == 3
    assert [r["Selector"] for r in rows] == ["img.a", "img.b", "p.hero"]
    assert rows[0]["WCAG Tags"] == "wcag2a; wcag111"
    assert rows[2]["Actionable"] == "Informational"


def test_finding_without_elements_still_gets_a_row():
    session = ScanSession(
        url=URL, engine=Engine.LIGHTHOUSE, timestamp=TS,
        findings=[Finding(engine=Engine.LIGHTHOUSE, identifier="bypass", title="Bypass", description="")],
    )
    rows = finding_rows(session)
    assert len(rows) == 1
    assert rows[0]["Selector"] == ""
    assert rows[0]["WCAG Tags"] == "Not mapped"


def test_write_csv_roundtrip_header(tmp_path):
    path = write_csv(tmp_path / "out.csv", finding_rows(_axe_session()))
    with open(path, newline="", encoding="utf-8") as f:
        reader = csv.reader(f)
        assert next(reader) == COLUMNS


def test_ticket_rows_are_single_line():
    rows = ticket_rows(_capture_session())
    assert all("\n" not in r["Ticket Text"] for r in rows)
    assert rows[0]["Tab"] == "Details"


# --- tickets ---

def test_capture_ticket_body():
    session = _capture_session()
    ticket = render_ticket(session.findings[0], URL, session.page_title)
    lines = ticket.split("\n")
    assert lines[0] == "[WAVE][Details] Missing form label"
    assert f"*Source:* {URL}" in lines
    assert "*Page:* Example Store | Checkout" in lines
    assert "*WAVE tab:* Details" in lines
    assert "*Category:* ERRORS" in lines
    assert "*Why this fails (WCAG 2.2 AA):*" in lines
    assert "h3. Reproduction" in lines
    assert "# Open the WAVE sidebar → Details tab." in lines


def test_informational_ticket_has_status_prefix():
    session = _axe_session()
    ticket = render_ticket(session.findings[2], URL)
    assert ticket.split("\n\n")[1] == INFORMATIONAL_STATUS


def test_standard_ticket_mentions_engine_and_wcag():
    session = _axe_session()
    ticket = render_ticket(session.findings[0], URL, "Checkout")
    assert "*Engine:* Axe-core" in ticket
    assert "*Severity:* critical" in ticket
    assert "*WCAG:* WCAG 1.1.1 Non-text Content (Level A)" in ticket
    assert "*Page:* Checkout" in ticket


def test_ticket_summary_clips_long_titles():
    finding = Finding(engine=Engine.TREE, identifier="nameless-link", title="x" * 100, description="")
    summary = ticket_summary(finding)
    assert summary == "[A11y Tree][nameless-link] " + "x" * 80 + "…"


# --- markdown ---

def test_markdown_groups_by_tab_for_captures():
    md = render_markdown(_capture_session(), capture_path="a11y-reports/capture.html")
    assert md.startswith("# WAVE Capture: ticket-ready issues")
    assert "Capture: a11y-reports/capture.html" in md
    assert "## Details tab" in md
    assert "## Tab Order tab" in md
    assert md.count("```") % 2 == 0


def test_markdown_groups_by_rule_for_axe():
    md = render_markdown(_axe_session())
    assert "## image-alt" in md
    assert "## color-contrast" in md


# --- writer ---

def test_url_slug():
    assert url_slug("https://www.example.com/a/b?q=1") == "www.example.com-a-b-q-1"
    assert len(url_slug("https://example.com/" + "x" * 200)) == 80


def test_file_timestamp_format():
    now = datetime(2026, 3, 2, 14, 5, 11, tzinfo=timezone.utc)
    assert file_timestamp(now) == "2026-03-02T14-05-11"


def test_base_name():
    now = datetime(2026, 3, 2, 14, 5, 11, tzinfo=timezone.utc)
    name = ReportWriter(Path("out")).base_name(_axe_session(), "-actionable", now)
    assert name == "report-axe-core-example.com-checkout-2026-03-02T14-05-11-actionable"


def test_writer_writes_html_csv_json(tmp_path):
    paths = ReportWriter(tmp_path).write(_axe_session())
    assert paths.html.exists()
    assert paths.csv.exists()
    data = json.loads(paths.json.read_text())
    assert data["engine"] == "axe"
    assert len(data["findings"]) == 3
    assert paths.markdown is None


def test_writer_adds_markdown_and_tickets_for_captures(tmp_path):
    paths = ReportWriter(tmp_path).write(_capture_session(), capture_path="cap.html")
    assert paths.markdown.exists()
    assert paths.tickets_csv.name.endswith("-tickets.csv")


def test_writer_compliance_json(tmp_path):
    lhr = json.loads((FIXTURES / "lighthouse_lhr.json").read_text())
    report = build_compliance_report(URL, lhr, timestamp=TS)
    path = ReportWriter(tmp_path).write_compliance(report)
    assert path.name == "wcag-audit-report.json"
    assert json.loads(path.read_text())["summary"]["failures"] == 3


def test_latest_capture(tmp_path):
    writer = ReportWriter(tmp_path)
    assert writer.latest_capture() is None
    path = writer.capture_path("https://example.com/")
    path.write_text("<html></html>")
    assert writer.latest_capture() == path
    assert path.name.startswith("wave-browser-capture-example.com-")
