from __future__ import annotations

import datetime
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .errors import DecodeError


def parse_timestamp(value: Optional[str]) -> Optional[datetime.datetime]:
    """Parse an RFC 3339 timestamp as sent by the API (``...Z``)."""
    if value is None:
        return None
    try:
        return datetime.datetime.fromisoformat(value.replace("Z", "+00:00"))
    except (AttributeError, ValueError) as e:
        raise DecodeError(f"Invalid timestamp '{value}'") from e


@dataclass
class User:
    username: str
    level: int
    profile_url: str = ""
    started_at: Optional[datetime.datetime] = None
    subscription_active: bool = False
    max_level_granted: int = 0

    @classmethod
    def from_api(cls, payload: Dict[str, Any]) -> "User":
        try:
            data = payload["data"]
            subscription = data.get("subscription") or {}
            return cls(
                username=data["username"],
                level=int(data["level"]),
                profile_url=data.get("profile_url", ""),
                started_at=parse_timestamp(data.get("started_at")),
                subscription_active=bool(subscription.get("active", False)),
                max_level_granted=int(subscription.get("max_level_granted", 0)),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise DecodeError(f"Malformed user payload: {e}") from e


@dataclass
class Assignment:
    id: int
    subject_id: int
    subject_type: str
    srs_stage: int = 0
    unlocked_at: Optional[datetime.datetime] = None
    started_at: Optional[datetime.datetime] = None
    available_at: Optional[datetime.datetime] = None
    burned_at: Optional[datetime.datetime] = None

    @classmethod
    def from_api(cls, payload: Dict[str, Any]) -> "Assignment":
        try:
            data = payload["data"]
            return cls(
                id=int(payload["id"]),
                subject_id=int(data["subject_id"]),
                subject_type=data["subject_type"],
                srs_stage=int(data.get("srs_stage", 0)),
                unlocked_at=parse_timestamp(data.get("unlocked_at")),
                started_at=parse_timestamp(data.get("started_at")),
                available_at=parse_timestamp(data.get("available_at")),
                burned_at=parse_timestamp(data.get("burned_at")),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise DecodeError(f"Malformed assignment payload: {e}") from e


@dataclass
class SummaryBlock:
    available_at: Optional[datetime.datetime]
    subject_ids: List[int] = field(default_factory=list)


@dataclass
class Summary:
    lessons: List[SummaryBlock]
    reviews: List[SummaryBlock]
    next_reviews_at: Optional[datetime.datetime] = None

    @classmethod
    def from_api(cls, payload: Dict[str, Any]) -> "Summary":
        try:
            data = payload["data"]

            def blocks(key: str) -> List[SummaryBlock]:
                return [
                    SummaryBlock(
                        available_at=parse_timestamp(block.get("available_at")),
                        subject_ids=[int(i) for i in block["subject_ids"]],
                    )
                    for block in data[key]
                ]

            return cls(
                lessons=blocks("lessons"),
                reviews=blocks("reviews"),
                next_reviews_at=parse_timestamp(data.get("next_reviews_at")),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise DecodeError(f"Malformed summary payload: {e}") from e

    def available_lessons(self) -> List[int]:
        return [subject_id for block in self.lessons for subject_id in block.subject_ids]

    def available_reviews(self) -> List[int]:
        """
        Subject ids whose review block is already open.

        The summary also lists blocks for the coming hours; only blocks whose
        ``available_at`` is not in the future count as available.
        """
        now = datetime.datetime.now(datetime.UTC)
        return [
            subject_id
            for block in self.reviews
            if block.available_at is None or block.available_at <= now
            for subject_id in block.subject_ids
        ]
