"""CI gate: exit code follows the actionable findings of a single scan."""
from unittest.mock import patch

from wcagscan.core.errors import ExternalServiceError, WaveThresholdError
from wcagscan.core.models import AuditScore, Engine, Finding, ScanSession, WaveCounts
from wcagscan.gate import describe, gate_exit_code, main

URL = "https://example.com/"


def _session(actionable=0, informational=0, engine=Engine.LIGHTHOUSE, summary=None):
    findings = [
        Finding(engine=engine, identifier=f"rule-{i}", title="t", description="d")
        for i in range(actionable)
    ] + [
        Finding(engine=engine, identifier=f"info-{i}", title="t", description="d", actionable=False)
        for i in range(informational)
    ]
    return ScanSession(url=URL, engine=engine, timestamp="2026-03-02T14:05:11+00:00", findings=findings, summary=summary)


def _run_main(*args: str) -> int:
    with patch("sys.argv", ["wcagscan-gate", *args]), patch("wcagscan.gate.configure_logging"):
        return main()


# --- exit code ---

def test_no_actionable_findings_passes():
    assert gate_exit_code(_session(informational=3)) == 0


def test_any_actionable_finding_fails():
    assert gate_exit_code(_session(actionable=1, informational=3)) == 1


def test_describe_includes_score():
    text = describe(_session(actionable=2, summary=AuditScore(0.87)))
    assert text == "Lighthouse: 2 actionable finding(s), accessibility score: 87"


def test_describe_without_score():
    assert describe(_session(engine=Engine.WAVE_API)) == "WAVE API: 0 actionable finding(s)"


# --- main ---

def test_gate_uses_target_url_from_env(monkeypatch, capsys):
    monkeypatch.setenv("TARGET_URL", URL)
    with patch("wcagscan.gate.scan_one", return_value=_session(informational=1)) as scan:
        code = _run_main()
    assert code == 0
    assert scan.call_args.args[0] == URL
    assert scan.call_args.args[1] is Engine.LIGHTHOUSE
    assert "Gate passed" in capsys.readouterr().out


def test_gate_fails_on_actionable_findings(monkeypatch, capsys):
    monkeypatch.delenv("TARGET_URL", raising=False)
    with patch("wcagscan.gate.scan_one", return_value=_session(actionable=2)):
        code = _run_main("--url", URL)
    assert code == 1
    assert "Gate failed: 2 accessibility issue(s) need fixing." in capsys.readouterr().err


def test_gate_without_url_exits_1(monkeypatch, capsys):
    monkeypatch.delenv("TARGET_URL", raising=False)
    assert _run_main() == 1
    assert "TARGET_URL" in capsys.readouterr().err


def test_gate_scan_error_exits_1(monkeypatch, capsys):
    monkeypatch.delenv("TARGET_URL", raising=False)
    with patch("wcagscan.gate.scan_one", side_effect=ExternalServiceError("Lighthouse failed: exit 1")):
        code = _run_main("--url", URL)
    assert code == 1
    assert "Gate failed: scan error" in capsys.readouterr().err


def test_gate_wave_threshold_uses_session_and_writes_report(monkeypatch, tmp_path):
    monkeypatch.delenv("TARGET_URL", raising=False)
    session = _session(actionable=1, engine=Engine.WAVE_API, summary=WaveCounts(error=1))
    error = WaveThresholdError("WAVE failures: errors=1, contrast=0. Require 0 for both.", payload={}, session=session)
    with patch("wcagscan.gate.scan_one", side_effect=error):
        code = _run_main("--url", URL, "--engine", "wave", "--out-dir", str(tmp_path))
    assert code == 1
    assert len(list(tmp_path.glob("report-wave-api-example.com-*.html"))) == 1


def test_gate_page_engine_launches_browser(monkeypatch):
    monkeypatch.delenv("TARGET_URL", raising=False)
    with patch("wcagscan.gate.sync_playwright") as pw, \
         patch("wcagscan.gate.scan_one", return_value=_session(engine=Engine.AXE)) as scan:
        code = _run_main("--url", URL, "--engine", "axe")
    assert code == 0
    browser = pw.return_value.__enter__.return_value.chromium.launch.return_value
    assert scan.call_args.args[3] is browser
    browser.close.assert_called_once()
