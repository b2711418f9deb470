from unittest.mock import MagicMock, patch

from audits import AuditKind, AxeRunner
from audits.axe import score_violations
from conftest import make_settings

RAW_AXE = {
    "violations": [
        {
            "id": "color-contrast",
            "impact": "serious",
            "description": "Contrast too low",
            "help": "Fix contrast",
            "helpUrl": "https://dequeuniversity.com/rules/axe/color-contrast",
            "nodes": [{}, {}],
        },
        {
            "id": "image-alt",
            "impact": None,
            "description": "Images need alt",
            "help": "Add alt",
            "helpUrl": "https://dequeuniversity.com/rules/axe/image-alt",
            "nodes": [{}],
        },
    ],
    "passes": [{}, {}, {}],
    "incomplete": [{}],
}


def test_score_violations():
    # serious (3) x 2 nodes + unknown impact (2) x 1 node
    assert score_violations(RAW_AXE["violations"]) == 92
    assert score_violations([]) == 100


def test_score_is_clamped():
    violations = [{"impact": "critical", "nodes": [{}] * 40}]
    assert score_violations(violations) == 0


def test_summarize():
    summary = AxeRunner(make_settings()).summarize(RAW_AXE)

    assert summary["score"] == 92
    assert summary["passes"] == 3
    assert summary["incomplete"] == 1
    assert summary["violations"][0] == {
        "id": "color-contrast",
        "impact": "serious",
        "description": "Contrast too low",
        "help": "Fix contrast",
        "help_url": "https://dequeuniversity.com/rules/axe/color-contrast",
        "nodes": 2,
    }
    assert summary["violations"][1]["impact"] == "moderate"


def test_run_uses_browser_and_always_quits():
    driver = MagicMock()
    axe = MagicMock()
    axe.run.return_value = RAW_AXE

    with patch("audits.axe.webdriver.Chrome", return_value=driver), patch(
        "audits.axe.Axe", return_value=axe
    ):
        result = AxeRunner(make_settings()).run("https://example.com")

    assert result.kind == AuditKind.REAL
    assert result.data["score"] == 92
    driver.get.assert_called_once_with("https://example.com")
    axe.inject.assert_called_once()
    driver.quit.assert_called_once()


def test_run_failure_is_failed_result_and_quits():
    driver = MagicMock()
    axe = MagicMock()
    axe.run.side_effect = RuntimeError("page crashed")

    with patch("audits.axe.webdriver.Chrome", return_value=driver), patch(
        "audits.axe.Axe", return_value=axe
    ):
        result = AxeRunner(make_settings()).run("https://example.com")

    assert result.kind == AuditKind.FAILED
    assert "page crashed" in result.error
    driver.quit.assert_called_once()


def test_browser_launch_failure_is_failed_result():
    with patch("audits.axe.webdriver.Chrome", side_effect=RuntimeError("no chrome")):
        result = AxeRunner(make_settings()).run("https://example.com")

    assert result.kind == AuditKind.FAILED


def test_mock_results_skip_browser():
    settings = make_settings(use_mock_results=True)

    with patch("audits.axe.webdriver.Chrome") as chrome:
        result = AxeRunner(settings).run("https://example.com")

    chrome.assert_not_called()
    assert result.kind == AuditKind.MOCK
    assert result.data["score"] == 92
    assert result.data["violations"][0]["id"] == "color-contrast"


def test_mock_results_ignored_in_production():
    settings = make_settings(use_mock_results=True, environment="production")

    with patch("audits.axe.webdriver.Chrome", side_effect=RuntimeError("no chrome")) as chrome:
        result = AxeRunner(settings).run("https://example.com")

    chrome.assert_called_once()
    assert result.kind == AuditKind.FAILED
