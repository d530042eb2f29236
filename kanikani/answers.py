from typing import Iterable

from .romaji import romaji_to_hiragana
from .subjects import Subject, accepted_meanings, accepted_readings


def normalize(text: str) -> str:
    """Trim surrounding whitespace and case-fold for comparison."""
    return text.strip().casefold()


def check_meaning(subject: Subject, answer: str) -> bool:
    normalized_answer = normalize(answer)
    return any(normalize(m) == normalized_answer for m in accepted_meanings(subject))


def validate_reading(answer: str, accepted: Iterable[str]) -> bool:
    """
    Match an answer against accepted kana readings.

    The answer is first compared as typed (kana input); if that fails it is
    converted from romaji to hiragana and compared again.
    """
    readings = [normalize(r) for r in accepted]
    normalized_answer = normalize(answer)
    if normalized_answer in readings:
        return True
    return romaji_to_hiragana(normalized_answer) in readings


def check_reading(subject: Subject, answer: str) -> bool:
    """
    Check a reading answer for ``subject``.

    Radicals never require a reading, so the check passes vacuously for them;
    sessions skip the reading prompt for radicals altogether.
    """
    if not subject.has_readings:
        return True
    return validate_reading(answer, accepted_readings(subject))
