"""Audit runners wrapping Lighthouse, axe-core and the header checker."""

from audits.axe import AxeRunner
from audits.base import AuditKind, AuditResult, BaseAuditRunner, validate_url
from audits.lighthouse import LighthouseRunner
from audits.security_headers import SecurityHeadersChecker, score_headers

__all__ = [
    "AuditKind",
    "AuditResult",
    "BaseAuditRunner",
    "validate_url",
    "LighthouseRunner",
    "AxeRunner",
    "SecurityHeadersChecker",
    "score_headers",
]
