"""Axe accessibility audit runner."""

import copy
import logging

from axe_selenium_python import Axe
from selenium import webdriver
from selenium.webdriver.chrome.options import Options

from audits.base import AuditResult, BaseAuditRunner, validate_url

logger = logging.getLogger(__name__)

# Points deducted per affected node, by violation impact
IMPACT_WEIGHTS = {
    "minor": 1,
    "moderate": 2,
    "serious": 3,
    "critical": 4,
}
DEFAULT_IMPACT_WEIGHT = 2

MOCK_AXE_RESULT = {
    "score": 92,
    "violations": [
        {
            "id": "color-contrast",
            "impact": "serious",
            "description": "Elements must have sufficient color contrast",
            "help": "Elements must have sufficient color contrast",
            "help_url": "https://dequeuniversity.com/rules/axe/4.4/color-contrast",
            "nodes": 2,
        }
    ],
    "passes": 18,
    "incomplete": 0,
}


def score_violations(violations: list[dict]) -> int:
    """
    Start from 100 and subtract impact weight times affected nodes for
    each violation, clamped to 0-100.
    """
    penalty = 0
    for violation in violations:
        weight = IMPACT_WEIGHTS.get(violation.get("impact") or "", DEFAULT_IMPACT_WEIGHT)
        penalty += weight * len(violation.get("nodes", []))
    return max(0, min(100, 100 - penalty))


class AxeRunner(BaseAuditRunner):
    """
    Runs axe-core inside headless Chrome.

    Returns the accessibility score, a summary of each violation, and the
    number of passing and incomplete rules.
    """

    CHROME_ARGS = [
        "--headless=new",
        "--no-sandbox",
        "--disable-setuid-sandbox",
        "--disable-dev-shm-usage",
        "--disable-gpu",
        "--no-first-run",
    ]

    @property
    def name(self) -> str:
        return "axe"

    def run(self, url: str) -> AuditResult:
        url = validate_url(url)

        if self.settings.use_mock_results and not self.settings.is_production:
            logger.info("Mock results enabled, skipping browser for Axe audit")
            return self.mock()

        driver = None
        try:
            driver = self._launch_browser()
            driver.set_page_load_timeout(self.settings.axe_page_timeout)

            logger.info(f"Running Axe audit for {url}")
            driver.get(url)

            axe = Axe(driver)
            axe.inject()
            raw = axe.run()

            return AuditResult.real(self.summarize(raw))

        except Exception as e:
            logger.exception(f"Axe audit failed for {url}: {e}")
            return AuditResult.failed(f"Axe audit failed: {e}")

        finally:
            if driver is not None:
                try:
                    driver.quit()
                except Exception as e:
                    logger.warning(f"Error closing browser: {e}")

    def mock(self) -> AuditResult:
        return AuditResult.mock(copy.deepcopy(MOCK_AXE_RESULT))

    def _launch_browser(self) -> webdriver.Chrome:
        options = Options()
        for arg in self.CHROME_ARGS:
            options.add_argument(arg)
        if self.settings.chrome_path:
            options.binary_location = self.settings.chrome_path
        return webdriver.Chrome(options=options)

    def summarize(self, raw: dict) -> dict:
        """Reduce raw axe-core output to score, violations and counts."""
        violations = raw.get("violations", [])
        return {
            "score": score_violations(violations),
            "violations": [
                {
                    "id": v.get("id"),
                    "impact": v.get("impact") or "moderate",
                    "description": v.get("description", ""),
                    "help": v.get("help", ""),
                    "help_url": v.get("helpUrl", ""),
                    "nodes": len(v.get("nodes", [])),
                }
                for v in violations
            ],
            "passes": len(raw.get("passes", [])),
            "incomplete": len(raw.get("incomplete", [])),
        }
