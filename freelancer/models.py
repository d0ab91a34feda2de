from datetime import date, timedelta
from typing import List, Optional
from dataclasses import dataclass, asdict


@dataclass
class Completion:
    date: str
    done: bool = False


@dataclass
class RequestContext:
    """What the core needs to know about an inbound request."""
    authorization: Optional[str] = None
    remote_addr: Optional[str] = None
    forwarded_for: Optional[str] = None

    @classmethod
    def from_request(cls, request) -> 'RequestContext':
        return cls(
            authorization=request.headers.get('Authorization'),
            remote_addr=request.remote_addr,
            forwarded_for=request.headers.get('X-Forwarded-For'),
        )

    @property
    def client_address(self) -> str:
        # first hop of a forwarded-for chain, then the peer, then one shared bucket
        if self.forwarded_for:
            first = self.forwarded_for.split(',')[0].strip()
            if first:
                return first
        return self.remote_addr or 'unknown'


@dataclass
class DailyTaskView:
    id: int
    projectId: int
    title: str
    completions: List[dict]
    streak: int
    history: List[bool]

    def to_dict(self) -> dict:
        return asdict(self)


def day_string(day: date) -> str:
    return day.isoformat()


def parse_day(value: str) -> date:
    return date.fromisoformat(value)


def days_before(day: date, n: int) -> date:
    return day - timedelta(days=n)
