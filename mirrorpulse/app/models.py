import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional, Tuple, Union


class SiteConfigError(ValueError):
    """Raised when the site list cannot be loaded or grouped."""


@dataclass(frozen=True)
class Site:
    name: str
    url: str
    group: str
    is_mirror: bool = False


@dataclass(frozen=True)
class SiteConfig:
    sites: Tuple[Site, ...] = ()
    group_descriptions: Dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class Observation:
    """Latest probe result for one site.

    pending  - nothing set yet
    resolved - http_status and reachable set
    failed   - reachable is False and error holds the reason
    """
    http_status: Optional[int] = None
    reachable: Optional[bool] = None
    error: Optional[str] = None
    checked_at: Optional[float] = None

    @classmethod
    def pending(cls) -> "Observation":
        return cls()

    @classmethod
    def resolved(cls, status_code: int) -> "Observation":
        return cls(http_status=status_code,
                   reachable=200 <= status_code <= 299,
                   checked_at=time.time())

    @classmethod
    def failed(cls, message: Optional[str] = None) -> "Observation":
        return cls(reachable=False, error=message or "Error", checked_at=time.time())

    @property
    def is_pending(self) -> bool:
        return self.http_status is None and self.reachable is None


class StatusCategory(str, Enum):
    PENDING = "Pending"
    MOVED = "Moved"
    ONLINE = "Online"
    OFFLINE = "Offline"


ERROR_MARKER = "ERR"


@dataclass(frozen=True)
class StatusLabel:
    category: StatusCategory
    code: Union[int, str, None] = None

    @property
    def text(self) -> str:
        if self.category is StatusCategory.OFFLINE:
            return f"{self.category.value} ({self.code})"
        return self.category.value


def status_label(obs: Observation) -> StatusLabel:
    if obs.is_pending:
        return StatusLabel(StatusCategory.PENDING)
    if obs.http_status == 301:
        return StatusLabel(StatusCategory.MOVED, 301)
    if obs.reachable:
        return StatusLabel(StatusCategory.ONLINE, obs.http_status)
    return StatusLabel(StatusCategory.OFFLINE, obs.http_status or ERROR_MARKER)


@dataclass(frozen=True)
class SiteGroup:
    title: str
    primary: Site
    mirrors: Tuple[Site, ...] = ()
    subtitle: Optional[str] = None

    @property
    def sites(self) -> Tuple[Site, ...]:
        return (self.primary,) + self.mirrors
