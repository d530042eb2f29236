from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from .errors import DecodeError


class SubjectKind(str, Enum):
    RADICAL = "radical"
    KANJI = "kanji"
    VOCABULARY = "vocabulary"
    KANA_VOCABULARY = "kana_vocabulary"

    def __str__(self) -> str:
        return self.value


RADICAL = SubjectKind.RADICAL
KANJI = SubjectKind.KANJI
VOCABULARY = SubjectKind.VOCABULARY
KANA_VOCABULARY = SubjectKind.KANA_VOCABULARY

SUBJECT_KINDS = tuple(kind.value for kind in SubjectKind)

_MARKUP_TAG = re.compile(r"</?(radical|kanji|vocabulary|reading|meaning|ja)>")


@dataclass(frozen=True)
class Meaning:
    meaning: str
    primary: bool = False
    accepted_answer: bool = True


@dataclass(frozen=True)
class Reading:
    reading: str
    primary: bool = False
    accepted_answer: bool = True
    type: Optional[str] = None  # onyomi / kunyomi / nanori for kanji


@dataclass(frozen=True)
class CharacterImage:
    url: str
    content_type: str


@dataclass(frozen=True)
class Subject:
    """
    One learnable unit as reported by ``/subjects/{id}``.

    ``kind`` is one of the four closed subject kinds. Radicals may have no
    ``characters`` and are then shown through ``character_images``; kana-only
    vocabulary has no readings of its own.
    """
    id: int
    kind: SubjectKind
    meanings: List[Meaning]
    characters: Optional[str] = None
    readings: List[Reading] = field(default_factory=list)
    character_images: List[CharacterImage] = field(default_factory=list)
    level: int = 0
    slug: str = ""
    meaning_mnemonic: str = ""
    reading_mnemonic: str = ""
    document_url: str = ""

    def __post_init__(self) -> None:
        # Accept plain strings; anything outside the four kinds is rejected here.
        object.__setattr__(self, "kind", SubjectKind(self.kind))

    @property
    def is_radical(self) -> bool:
        return self.kind == RADICAL

    @property
    def has_readings(self) -> bool:
        return self.kind != RADICAL

    @classmethod
    def from_api(cls, payload: Dict[str, Any]) -> "Subject":
        """Build a subject from a WaniKani subject resource."""
        try:
            kind = payload["object"]
            data = payload["data"]
            if kind not in SUBJECT_KINDS:
                raise DecodeError(f"Unknown subject type '{kind}'")

            meanings = [
                Meaning(
                    meaning=m["meaning"],
                    primary=bool(m.get("primary", False)),
                    accepted_answer=bool(m.get("accepted_answer", True)),
                )
                for m in data["meanings"]
            ]
            if not meanings:
                raise DecodeError(f"Subject {payload.get('id')} has no meanings")

            readings = [
                Reading(
                    reading=r["reading"],
                    primary=bool(r.get("primary", False)),
                    accepted_answer=bool(r.get("accepted_answer", True)),
                    type=r.get("type"),
                )
                for r in data.get("readings") or []
            ]
            images = [
                CharacterImage(url=img["url"], content_type=img.get("content_type", ""))
                for img in data.get("character_images") or []
            ]

            return cls(
                id=int(payload["id"]),
                kind=SubjectKind(kind),
                meanings=meanings,
                characters=data.get("characters"),
                readings=readings,
                character_images=images,
                level=int(data.get("level", 0)),
                slug=data.get("slug", ""),
                meaning_mnemonic=data.get("meaning_mnemonic") or "",
                reading_mnemonic=data.get("reading_mnemonic") or "",
                document_url=data.get("document_url", ""),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise DecodeError(f"Malformed subject payload: {e}") from e


def accepted_meanings(subject: Subject) -> List[str]:
    return [m.meaning for m in subject.meanings]


def accepted_readings(subject: Subject) -> List[str]:
    """Readings a learner may answer with; empty for radicals."""
    if subject.kind == RADICAL:
        return []
    if subject.kind == KANA_VOCABULARY:
        return [subject.characters] if subject.characters else []
    return [r.reading for r in subject.readings]


def display_characters(subject: Subject) -> Optional[str]:
    """Characters to draw for the subject, or None when only an image exists."""
    if subject.kind == RADICAL:
        return subject.characters or None
    return subject.characters or ""


def primary_meaning(subject: Subject) -> str:
    for m in subject.meanings:
        if m.primary:
            return m.meaning
    return subject.meanings[0].meaning if subject.meanings else ""


def primary_reading(subject: Subject) -> str:
    for r in subject.readings:
        if r.primary:
            return r.reading
    readings = accepted_readings(subject)
    return readings[0] if readings else ""


def strip_markup(text: str) -> str:
    """Remove WaniKani's inline highlight tags (``<radical>``, ``<ja>`` ...)."""
    return _MARKUP_TAG.sub("", text)
