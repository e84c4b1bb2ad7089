"""
Request Context

Carries the acting principal and the request clock into service calls so
that no operation depends on ambient request state.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class RequestContext:
    """Who is acting, and what time it is for this request."""
    actor: Optional[str] = None
    now: datetime = field(default_factory=utcnow)

    @property
    def actor_label(self) -> str:
        return self.actor or "anonymous"
