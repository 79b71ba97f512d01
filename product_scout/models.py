# product_scout/models.py
"""
Data models shared by the job, the queue and the dispatcher.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, Iterable, Optional, Union

from product_scout.utils import domain_label, normalize_url


@dataclass(frozen=True, slots=True)
class DomainTarget:
    """One storefront URL from the configuration."""

    url: str

    @property
    def identity(self) -> str:
        """Normalized URL: queue job id and store key."""
        return normalize_url(self.url)

    @property
    def name(self) -> str:
        return domain_label(self.url)


@dataclass(frozen=True, slots=True)
class CrawlJob:
    """A delivery of one domain to a worker, with its attempt number."""

    target: DomainTarget
    attempt: int = 0

    def __post_init__(self) -> None:
        if self.attempt < 0:
            raise ValueError("attempt must be >= 0")

    def payload(self) -> Dict[str, Any]:
        return {"url": self.target.url}

    @classmethod
    def from_payload(cls, payload: Dict[str, Any], attempt: int) -> CrawlJob:
        return cls(DomainTarget(str(payload["url"])), attempt)


@dataclass(slots=True)
class DomainMetadata:
    """Hash written per domain on success and read by the report writer."""

    name: str
    urls: FrozenSet[str] = field(default_factory=frozenset)

    def __post_init__(self) -> None:
        self.urls = frozenset(self.urls)

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "urls": sorted(self.urls)}


@dataclass(frozen=True, slots=True)
class Success:
    urls: FrozenSet[str]


@dataclass(frozen=True, slots=True)
class Failure:
    reason: str


JobOutcome = Union[Success, Failure]


def success(urls: Iterable[str]) -> Success:
    return Success(frozenset(urls))


def failure(error: Union[BaseException, str, None]) -> Failure:
    if isinstance(error, BaseException):
        return Failure(f"{type(error).__name__}: {error}")
    return Failure(error or "unknown error")


@dataclass(slots=True)
class CrawlSummary:
    """Итог сессии: успешные домены с URL-ами и провалившиеся с причиной."""

    total: int = 0
    completed: Dict[str, FrozenSet[str]] = field(default_factory=dict)
    failed: Dict[str, str] = field(default_factory=dict)
    duration: float = 0.0
    output_path: Optional[str] = None

    @property
    def resolved(self) -> int:
        return len(self.completed) + len(self.failed)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "total": self.total,
            "completed": len(self.completed),
            "failed": sorted(self.failed),
            "product_urls": sum(len(v) for v in self.completed.values()),
            "duration": round(self.duration, 2),
            "output": self.output_path,
        }


__all__ = [
    "DomainTarget",
    "CrawlJob",
    "DomainMetadata",
    "Success",
    "Failure",
    "JobOutcome",
    "success",
    "failure",
    "CrawlSummary",
]
