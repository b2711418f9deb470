"""Lighthouse performance audit runner."""

import copy
import json
import logging
import os
import subprocess
import tempfile
from pathlib import Path

from audits.base import AuditResult, BaseAuditRunner, validate_url

logger = logging.getLogger(__name__)

# Lighthouse category id -> key in our payload
CATEGORIES = {
    "performance": "performance",
    "accessibility": "accessibility",
    "seo": "seo",
    "best-practices": "best_practices",
}

# Lighthouse audit id -> (metric name, unit)
PERFORMANCE_METRICS = {
    "first-contentful-paint": ("First Contentful Paint", "ms"),
    "largest-contentful-paint": ("Largest Contentful Paint", "ms"),
    "cumulative-layout-shift": ("Cumulative Layout Shift", None),
    "total-blocking-time": ("Total Blocking Time", "ms"),
    "speed-index": ("Speed Index", "ms"),
    "server-response-time": ("Server Response Time", "ms"),
}

MOCK_REPORT = {
    "performance": {
        "score": 85,
        "metrics": {
            "First Contentful Paint": {"value": 1200, "unit": "ms"},
            "Largest Contentful Paint": {"value": 2500, "unit": "ms"},
            "Cumulative Layout Shift": {"value": 0.1, "unit": None},
            "Total Blocking Time": {"value": 150, "unit": "ms"},
            "Speed Index": {"value": 3000, "unit": "ms"},
            "Server Response Time": {"value": 200, "unit": "ms"},
        },
    },
    "accessibility": {
        "score": 92,
        "issues": [
            {
                "title": "Images must have alternate text",
                "description": "Informative elements should aim for short, descriptive alternate text.",
                "severity": "medium",
            }
        ],
    },
    "seo": {
        "score": 95,
        "issues": [
            {
                "title": "Document does not have a meta description",
                "description": "Meta descriptions may be included in search results to concisely summarize page content.",
                "severity": "medium",
            }
        ],
    },
    "best_practices": {
        "score": 87,
        "issues": [
            {
                "title": "Uses HTTPS",
                "description": "All sites should be protected with HTTPS, even ones that don't handle sensitive data.",
                "severity": "low",
            }
        ],
    },
}


def severity_for_score(score: float | None) -> str:
    """Map a Lighthouse audit score (0-1) to an issue severity."""
    if score is None or score < 0.5:
        return "high"
    if score < 0.9:
        return "medium"
    return "low"


class LighthouseRunner(BaseAuditRunner):
    """
    Runs Google Lighthouse audits via CLI.

    Collects:
    - Category scores: Performance, Accessibility, SEO, Best Practices
    - Core Web Vitals and timing metrics (FCP, LCP, CLS, TBT, SI, TTFB)
    - Failing audits per category as issues
    """

    @property
    def name(self) -> str:
        return "lighthouse"

    def run(self, url: str) -> AuditResult:
        """
        Run Lighthouse audit on the given URL.

        Args:
            url: Website URL to audit

        Returns:
            AuditResult with the parsed Lighthouse report
        """
        url = validate_url(url)

        try:
            raw_data = self._run_lighthouse(url)
            return AuditResult.real(self.parse_report(raw_data))

        except subprocess.TimeoutExpired:
            logger.error(f"Lighthouse timeout for {url}")
            return AuditResult.failed("Lighthouse audit timed out")

        except Exception as e:
            logger.exception(f"Lighthouse failed for {url}: {e}")
            return AuditResult.failed(f"Lighthouse audit failed: {e}")

    def mock(self) -> AuditResult:
        return AuditResult.mock(copy.deepcopy(MOCK_REPORT))

    def _run_lighthouse(self, url: str) -> dict:
        """
        Execute Lighthouse CLI and return JSON results.

        The headless Chrome instance belongs to the CLI process, so it is
        gone once the subprocess exits or is killed on timeout.
        """
        with tempfile.NamedTemporaryFile(
            mode="w",
            suffix=".json",
            delete=False,
        ) as f:
            output_path = f.name

        try:
            cmd = [
                self.settings.lighthouse_binary,
                url,
                "--output=json",
                f"--output-path={output_path}",
                "--chrome-flags=--headless --no-sandbox --disable-gpu --disable-dev-shm-usage",
                "--quiet",
                "--only-categories=performance,accessibility,best-practices,seo",
            ]

            env = dict(os.environ)
            if self.settings.chrome_path:
                env["CHROME_PATH"] = self.settings.chrome_path

            logger.info(f"Running Lighthouse: {' '.join(cmd)}")

            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                timeout=self.settings.lighthouse_timeout,
                env=env,
            )

            if result.returncode != 0:
                logger.warning(f"Lighthouse stderr: {result.stderr}")

            output_file = Path(output_path)
            if output_file.exists() and output_file.stat().st_size > 0:
                with open(output_file) as f:
                    return json.load(f)
            raise RuntimeError(
                f"Lighthouse output file not created: {result.stderr}"
            )

        finally:
            Path(output_path).unlink(missing_ok=True)

    def parse_report(self, raw_data: dict) -> dict:
        """
        Extract category scores, performance metrics and issues from
        Lighthouse JSON output.

        Args:
            raw_data: Full Lighthouse JSON output

        Returns:
            Dict keyed by performance/accessibility/seo/best_practices
        """
        categories = raw_data.get("categories", {})
        audits = raw_data.get("audits", {})

        report: dict = {}
        for category_id, key in CATEGORIES.items():
            score = categories.get(category_id, {}).get("score")
            report[key] = {"score": round((score or 0) * 100, 1)}

        metrics = {}
        for audit_id, (metric_name, unit) in PERFORMANCE_METRICS.items():
            value = audits.get(audit_id, {}).get("numericValue")
            if value is not None:
                metrics[metric_name] = {"value": value, "unit": unit}
        report["performance"]["metrics"] = metrics

        # Which category each audit belongs to
        audit_category = {}
        for category_id, category in categories.items():
            for ref in category.get("auditRefs", []):
                audit_category.setdefault(ref.get("id"), category_id)

        for category_id in ("accessibility", "seo", "best-practices"):
            issues = []
            for audit_id, audit in audits.items():
                if audit_category.get(audit_id) != category_id:
                    continue
                score = audit.get("score")
                if score is None or score == 1:
                    continue
                issues.append(
                    {
                        "title": audit.get("title", audit_id),
                        "description": audit.get("description", ""),
                        "severity": severity_for_score(score),
                    }
                )
            report[CATEGORIES[category_id]]["issues"] = issues

        return report
