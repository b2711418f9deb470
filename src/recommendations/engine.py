"""Recommendation engine that evaluates rules against an aggregated scan report."""

import logging
import uuid

from sqlalchemy.orm import Session

from db.models import Recommendation
from recommendations.rules import ALL_RULES, Rule

logger = logging.getLogger(__name__)

MAX_RECOMMENDATIONS = 10

SEVERITY_ORDER = {"high": 0, "medium": 1, "low": 2}


class RecommendationEngine:
    """
    Generates recommendations by evaluating rules against a scan report.

    The engine:
    1. Evaluates each rule against the report
    2. Deduplicates triggered rules
    3. Orders them by priority score, then severity
    4. Adds the top Recommendation rows to the session

    The caller owns the transaction; nothing is committed here.
    """

    def __init__(self, session: Session, rules: list[Rule] | None = None):
        self.session = session
        self.rules = ALL_RULES if rules is None else rules

    def generate(self, scan_id: uuid.UUID, report: dict) -> list[Recommendation]:
        """
        Generate recommendations for a scan.

        Args:
            scan_id: UUID of the scan
            report: Aggregated report built by the scan service

        Returns:
            The Recommendation objects added to the session
        """
        logger.info(f"Generating recommendations for scan {scan_id}")

        triggered = self.evaluate(report)
        logger.info(f"Triggered {len(triggered)} rules")

        recommendations = [
            Recommendation(
                scan_id=scan_id,
                rule_id=rule.id,
                category=rule.category,
                priority=rule.severity,
                title=rule.title,
                description=rule.description,
                implementation_details=rule.fix_suggestion,
                impact=rule.impact,
                effort=rule.effort,
                priority_score=rule.priority_score,
                reference_url=rule.reference_url,
            )
            for rule in triggered[:MAX_RECOMMENDATIONS]
        ]
        self.session.add_all(recommendations)

        return recommendations

    def evaluate(self, report: dict) -> list[Rule]:
        """Rules triggered by the report, highest priority first."""
        triggered = []
        seen_ids = set()

        for rule in self.rules:
            if rule.id in seen_ids:
                continue
            try:
                if rule.condition(report):
                    triggered.append(rule)
                    seen_ids.add(rule.id)
                    logger.debug(f"Rule triggered: {rule.id}")
            except Exception as e:
                logger.warning(f"Error evaluating rule {rule.id}: {e}")

        triggered.sort(
            key=lambda r: (-r.priority_score, SEVERITY_ORDER.get(r.severity, 99))
        )
        return triggered
