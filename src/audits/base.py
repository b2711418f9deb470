"""Base audit runner interface."""

import enum
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import urlparse

from config import Settings
from core.exceptions import ValidationError


class AuditKind(str, enum.Enum):
    """Where an audit payload came from."""

    REAL = "real"      # The tool ran against the site
    MOCK = "mock"      # Fixed payload, used only outside production
    FAILED = "failed"  # The tool could not produce a result


@dataclass
class AuditResult:
    """
    Tagged result of a single audit run.

    Runners never swallow their own failures: they return a FAILED result
    and the caller decides whether a mock payload is acceptable.
    """

    kind: AuditKind
    data: dict[str, Any] = field(default_factory=dict)
    error: str | None = None

    @classmethod
    def real(cls, data: dict[str, Any]) -> "AuditResult":
        return cls(kind=AuditKind.REAL, data=data)

    @classmethod
    def mock(cls, data: dict[str, Any]) -> "AuditResult":
        return cls(kind=AuditKind.MOCK, data=data)

    @classmethod
    def failed(cls, error: str) -> "AuditResult":
        return cls(kind=AuditKind.FAILED, error=error)

    @property
    def ok(self) -> bool:
        return self.kind != AuditKind.FAILED


def validate_url(url: str) -> str:
    """
    Fail fast on anything that is not an absolute http(s) URL with a host.

    Raises:
        ValidationError: if the URL is malformed
    """
    if not url or not isinstance(url, str):
        raise ValidationError("URL is required")
    url = url.strip()
    try:
        parsed = urlparse(url)
        parsed.port  # raises on a non-numeric or out-of-range port
    except ValueError:
        raise ValidationError("Invalid URL format")
    if parsed.scheme not in ("http", "https") or not parsed.hostname:
        raise ValidationError("Invalid URL format")
    if any(char.isspace() for char in parsed.netloc):
        raise ValidationError("Invalid URL format")
    return url


class BaseAuditRunner(ABC):
    """Abstract base class for all audit runners."""

    def __init__(self, settings: Settings):
        self.settings = settings

    @property
    @abstractmethod
    def name(self) -> str:
        """Return runner name."""
        pass

    @abstractmethod
    def run(self, url: str) -> AuditResult:
        """
        Run the audit on the given URL.

        Args:
            url: The website URL to audit

        Returns:
            AuditResult tagged REAL or FAILED (MOCK only when mock
            results are forced by configuration)

        Raises:
            ValidationError: if the URL is malformed
        """
        pass

    @abstractmethod
    def mock(self) -> AuditResult:
        """Fixed payload used when real audits are unavailable."""
        pass
