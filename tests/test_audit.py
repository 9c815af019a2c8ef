"""Strict compliance audit CLI with Lighthouse mocked out."""
import json
from pathlib import Path
from unittest.mock import patch

from wcagscan.adapters.lighthouse import build_compliance_report
from wcagscan.audit import format_summary, main
from wcagscan.core.errors import ExternalServiceError

FIXTURES = Path(__file__).parent / "fixtures"
URL = "https://example.com/checkout"


def _lhr():
    return json.loads((FIXTURES / "lighthouse_lhr.json").read_text())


def _run_main(*args: str) -> int:
    with patch("sys.argv", ["wcagscan-audit", *args]), patch("wcagscan.audit.configure_logging"):
        return main()


def test_format_summary_is_one_row():
    report = build_compliance_report(URL, _lhr(), timestamp="2026-03-02T14:05:11+00:00")
    lines = format_summary(report).splitlines()
    assert len(lines) == 3
    assert lines[0].split(" | ")[0].strip() == "auditTarget"
    values = [v.strip() for v in lines[2].split(" | ")]
    assert values == [URL, "WCAG 2.2 AA / AODA", "2", "3", "1", "1"]


def test_audit_writes_report(tmp_path, capsys):
    out = tmp_path / "audit.json"
    with patch("wcagscan.audit.run_lighthouse", return_value=(_lhr(), None)):
        code = _run_main(URL, "--output", str(out))
    assert code == 0
    data = json.loads(out.read_text())
    assert data["auditTarget"] == URL
    assert data["summary"] == {"passes": 2, "failures": 3, "manualChecks": 1, "notApplicable": 1}
    assert f"WCAG audit report written to {out}" in capsys.readouterr().out


def test_audit_rejects_non_http_url(capsys):
    with patch("wcagscan.audit.run_lighthouse") as run:
        code = _run_main("example.com")
    assert code == 1
    run.assert_not_called()
    assert "Usage: wcagscan-audit <url>" in capsys.readouterr().err


def test_audit_unreachable_url(capsys):
    with patch("wcagscan.audit.run_lighthouse", side_effect=ExternalServiceError("net::ERR_NAME_NOT_RESOLVED")):
        code = _run_main("https://example.invalid/")
    assert code == 1
    assert "Failed to reach URL https://example.invalid/" in capsys.readouterr().err


def test_audit_other_failure(capsys):
    with patch("wcagscan.audit.run_lighthouse", side_effect=ExternalServiceError("no JSON output")):
        code = _run_main(URL)
    assert code == 1
    assert "WCAG audit failed: no JSON output" in capsys.readouterr().err
