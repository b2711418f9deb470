import json
import subprocess
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from audits import AuditKind, LighthouseRunner
from audits.lighthouse import severity_for_score
from conftest import make_settings
from core.exceptions import ValidationError

RAW_REPORT = {
    "categories": {
        "performance": {"score": 0.72, "auditRefs": [{"id": "largest-contentful-paint"}]},
        "accessibility": {"score": 0.88, "auditRefs": [{"id": "image-alt"}, {"id": "html-has-lang"}]},
        "seo": {"score": 0.9, "auditRefs": [{"id": "meta-description"}]},
        "best-practices": {"score": 1.0, "auditRefs": [{"id": "is-on-https"}]},
    },
    "audits": {
        "first-contentful-paint": {"numericValue": 1500.5},
        "largest-contentful-paint": {"numericValue": 3100, "score": 0.4},
        "cumulative-layout-shift": {"numericValue": 0.02},
        "image-alt": {"title": "Images have alt", "description": "Add alt text", "score": 0},
        "html-has-lang": {"title": "Has lang", "description": "", "score": 1},
        "meta-description": {"title": "Meta description", "description": "Add one", "score": 0.6},
        "is-on-https": {"title": "Uses HTTPS", "description": "", "score": None},
    },
}


def _fake_lighthouse(report):
    """subprocess.run replacement that writes ``report`` to the output path."""

    def run(cmd, **kwargs):
        output_arg = next(arg for arg in cmd if arg.startswith("--output-path="))
        Path(output_arg.split("=", 1)[1]).write_text(json.dumps(report))
        return MagicMock(returncode=0, stderr="")

    return run


def test_parse_report_scores_and_metrics():
    report = LighthouseRunner(make_settings()).parse_report(RAW_REPORT)

    assert report["performance"]["score"] == 72
    assert report["best_practices"]["score"] == 100
    assert report["performance"]["metrics"] == {
        "First Contentful Paint": {"value": 1500.5, "unit": "ms"},
        "Largest Contentful Paint": {"value": 3100, "unit": "ms"},
        "Cumulative Layout Shift": {"value": 0.02, "unit": None},
    }


def test_parse_report_issues_skip_passing_and_unscored_audits():
    report = LighthouseRunner(make_settings()).parse_report(RAW_REPORT)

    assert report["accessibility"]["issues"] == [
        {"title": "Images have alt", "description": "Add alt text", "severity": "high"}
    ]
    assert report["seo"]["issues"][0]["severity"] == "medium"
    assert report["best_practices"]["issues"] == []


def test_severity_for_score():
    assert severity_for_score(0.2) == "high"
    assert severity_for_score(0.7) == "medium"
    assert severity_for_score(0.95) == "low"


def test_run_returns_real_result_and_removes_output():
    runner = LighthouseRunner(make_settings())
    seen = {}

    def run(cmd, **kwargs):
        seen["cmd"] = cmd
        seen["timeout"] = kwargs["timeout"]
        return _fake_lighthouse(RAW_REPORT)(cmd, **kwargs)

    with patch("audits.lighthouse.subprocess.run", side_effect=run):
        result = runner.run("https://example.com")

    assert result.kind == AuditKind.REAL
    assert result.data["performance"]["score"] == 72
    assert seen["timeout"] == runner.settings.lighthouse_timeout
    assert "--output=json" in seen["cmd"]

    output_path = next(arg for arg in seen["cmd"] if arg.startswith("--output-path=")).split("=", 1)[1]
    assert not Path(output_path).exists()


def test_run_passes_chrome_path():
    runner = LighthouseRunner(make_settings(chrome_path="/opt/chromium/chrome"))
    envs = []

    def run(cmd, **kwargs):
        envs.append(kwargs["env"])
        return _fake_lighthouse(RAW_REPORT)(cmd, **kwargs)

    with patch("audits.lighthouse.subprocess.run", side_effect=run):
        runner.run("https://example.com")

    assert envs[0]["CHROME_PATH"] == "/opt/chromium/chrome"


def test_timeout_is_failed_result():
    runner = LighthouseRunner(make_settings())

    with patch(
        "audits.lighthouse.subprocess.run",
        side_effect=subprocess.TimeoutExpired(cmd="lighthouse", timeout=120),
    ):
        result = runner.run("https://example.com")

    assert result.kind == AuditKind.FAILED
    assert result.error == "Lighthouse audit timed out"


def test_missing_output_is_failed_result():
    runner = LighthouseRunner(make_settings())

    with patch(
        "audits.lighthouse.subprocess.run",
        return_value=MagicMock(returncode=1, stderr="Chrome not found"),
    ):
        result = runner.run("https://example.com")

    assert result.kind == AuditKind.FAILED
    assert "Chrome not found" in result.error


def test_invalid_url_raises_before_running():
    with patch("audits.lighthouse.subprocess.run") as run:
        with pytest.raises(ValidationError):
            LighthouseRunner(make_settings()).run("example.com")

    run.assert_not_called()


def test_mock_payload_is_a_copy():
    runner = LighthouseRunner(make_settings())
    first = runner.mock()
    first.data["performance"]["score"] = 0

    assert runner.mock().data["performance"]["score"] == 85
    assert runner.mock().kind == AuditKind.MOCK
