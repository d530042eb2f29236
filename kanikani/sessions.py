"""
Review and lesson sessions.

A review session drives every study item through a meaning prompt and (except
for radicals) a reading prompt, counts wrong answers, and submits one result
per item as soon as both prompts are answered correctly. A lesson session is a
plain walk through new subjects.

Sessions are strictly sequential: one prompt, one blocking call at a time.
Any collaborator failure ends the session; nothing is retried and no result is
submitted for the item that was in flight.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Protocol, Sequence, Tuple, Union

from . import answers
from .display import Display
from .errors import DecodeError, KanikaniError
from .render import AsciiRenderer
from .resources import Assignment
from .subjects import (
    KANA_VOCABULARY,
    RADICAL,
    Subject,
    display_characters,
    primary_meaning,
    primary_reading,
    strip_markup,
)

logger = logging.getLogger(__name__)

REVIEW = "review"
LESSON = "lesson"
QUIT_COMMAND = "q"

# (assignment_id, subject_id) or (assignment_id, subject_id, subject_type)
AssignmentRef = Union[Tuple[int, int], Tuple[int, int, str], Assignment]


class SubjectRepository(Protocol):
    def fetch_subject(self, subject_id: int) -> Subject: ...

    def fetch_image(self, url: str) -> bytes: ...


class ResultSink(Protocol):
    def submit_review(
        self,
        assignment_id: int,
        incorrect_meaning_answers: int,
        incorrect_reading_answers: int,
    ) -> None: ...


class Renderer(Protocol):
    def render_text(self, characters: str) -> str: ...

    def render_image(self, data: bytes) -> str: ...


@dataclass
class StudyItem:
    """Progress of one subject within the current session."""
    subject_id: int
    assignment_id: Optional[int] = None
    subject_type: Optional[str] = None
    incorrect_meaning_answers: int = 0
    incorrect_reading_answers: int = 0
    needs_meaning: bool = True
    needs_reading: bool = True

    def __post_init__(self) -> None:
        if self.subject_type == RADICAL:
            self.needs_reading = False

    @property
    def done(self) -> bool:
        return not self.needs_meaning and not self.needs_reading


@dataclass
class SessionSummary:
    kind: str
    total: int
    completed: int = 0
    passed: int = 0
    incorrect_meaning: int = 0
    incorrect_reading: int = 0
    aborted: bool = False
    error: Optional[str] = None

    @property
    def failed(self) -> int:
        return self.completed - self.passed


def _to_item(ref: AssignmentRef) -> StudyItem:
    if isinstance(ref, Assignment):
        return StudyItem(ref.subject_id, assignment_id=ref.id, subject_type=ref.subject_type)
    if len(ref) == 3:
        assignment_id, subject_id, subject_type = ref  # type: ignore[misc]
        return StudyItem(subject_id, assignment_id=assignment_id, subject_type=subject_type)
    assignment_id, subject_id = ref[0], ref[1]
    return StudyItem(subject_id, assignment_id=assignment_id)


def _present_subject(
    subject: Subject,
    repository: SubjectRepository,
    renderer: Renderer,
    display: Display,
    image_cache: Optional[Dict[int, str]] = None,
) -> None:
    characters = display_characters(subject)
    if characters is not None:
        display.show(renderer.render_text(characters))
        return

    if image_cache is not None and subject.id in image_cache:
        display.show(image_cache[subject.id])
        return
    if not subject.character_images:
        raise DecodeError(f"Radical {subject.id} has neither characters nor images")
    data = repository.fetch_image(subject.character_images[0].url)
    art = renderer.render_image(data)
    if image_cache is not None:
        image_cache[subject.id] = art
    display.show(art)


class ReviewSession:
    """
    Quiz every due item on meaning and reading until all are answered.

    Items are kept in the order they were given and the first remaining item
    is always the one prompted next, so a wrong answer repeats the same prompt
    and items are finished and submitted in insertion order.
    """

    def __init__(
        self,
        client: SubjectRepository,
        assignments: Iterable[AssignmentRef],
        display: Display,
        renderer: Optional[Renderer] = None,
        sink: Optional[ResultSink] = None,
    ) -> None:
        self.client = client
        self.display = display
        self.renderer: Renderer = renderer or AsciiRenderer()
        self.sink: ResultSink = sink or client  # type: ignore[assignment]

        self.items: Dict[int, StudyItem] = {}
        for ref in assignments:
            item = _to_item(ref)
            self.items.setdefault(item.subject_id, item)

        self.current_item: Optional[int] = None
        self.submitted: List[StudyItem] = []
        self._subjects: Dict[int, Subject] = {}
        # rendered radical images, keyed by subject id
        self._images: Dict[int, str] = {}
        self.summary = SessionSummary(kind=REVIEW, total=len(self.items))

    def run(self) -> SessionSummary:
        if not self.items:
            self.display.show("No reviews available!")
            return self.summary

        self.display.show(f"Starting review session with {len(self.items)} items")
        logger.info("Review session started with %s items", len(self.items))
        try:
            while self.items:
                self.select_next_item()
                self.step()
        except KanikaniError as e:
            logger.warning("Review session aborted: %s", e)
            self.summary.aborted = True
            self.summary.error = str(e)
            self.display.show(f"Error during review session: {e}")
            return self.summary

        self.display.show("Review session complete!")
        logger.info(
            "Review session finished: %s items, %s passed",
            self.summary.completed,
            self.summary.passed,
        )
        return self.summary

    def select_next_item(self) -> Optional[int]:
        self.current_item = next(iter(self.items), None)
        return self.current_item

    def subject_for(self, item: StudyItem) -> Subject:
        subject = self._subjects.get(item.subject_id)
        if subject is None:
            subject = self.client.fetch_subject(item.subject_id)
            self._subjects[item.subject_id] = subject
            if subject.is_radical:
                item.subject_type = RADICAL
                item.needs_reading = False
        return subject

    def step(self) -> None:
        """Drive the current item through one prompt and finish it if it is done."""
        if self.current_item is None:
            return
        item = self.items[self.current_item]
        subject = self.subject_for(item)

        if item.needs_meaning:
            self.ask_meaning(subject, item)
        elif item.needs_reading:
            self.ask_reading(subject, item)

        if item.done:
            self.finish(item)

    def ask_meaning(self, subject: Subject, item: StudyItem) -> bool:
        _present_subject(subject, self.client, self.renderer, self.display, self._images)
        answer = self.display.prompt("Enter the meaning:")
        correct = answers.check_meaning(subject, answer)
        if correct:
            self.display.show("Correct!")
            item.needs_meaning = False
        else:
            self.display.show("Incorrect, try again")
            item.incorrect_meaning_answers += 1
        return correct

    def ask_reading(self, subject: Subject, item: StudyItem) -> bool:
        _present_subject(subject, self.client, self.renderer, self.display, self._images)
        answer = self.display.prompt("Enter the reading (in hiragana or romaji):")
        correct = answers.check_reading(subject, answer)
        if correct:
            self.display.show("Correct!")
            item.needs_reading = False
        else:
            self.display.show("Incorrect, try again")
            item.incorrect_reading_answers += 1
        return correct

    def finish(self, item: StudyItem) -> None:
        if item.assignment_id is None:
            raise ValueError(f"Study item for subject {item.subject_id} has no assignment")
        self.sink.submit_review(
            item.assignment_id,
            item.incorrect_meaning_answers,
            item.incorrect_reading_answers,
        )
        del self.items[item.subject_id]
        self.submitted.append(item)

        self.summary.completed += 1
        self.summary.incorrect_meaning += item.incorrect_meaning_answers
        self.summary.incorrect_reading += item.incorrect_reading_answers
        if item.incorrect_meaning_answers == 0 and item.incorrect_reading_answers == 0:
            self.summary.passed += 1


def lesson_text(subject: Subject) -> str:
    meaning = primary_meaning(subject)
    if subject.kind == RADICAL:
        return f"\nMeaning: {meaning}\nMnemonic: {strip_markup(subject.meaning_mnemonic)}\n"
    if subject.kind == KANA_VOCABULARY:
        return f"\nMeaning: {meaning}\nMeaning Mnemonic: {strip_markup(subject.meaning_mnemonic)}\n"
    return (
        f"\nMeaning: {meaning}"
        f"\nReading (hiragana or romaji): {primary_reading(subject)}"
        f"\nMeaning Mnemonic: {strip_markup(subject.meaning_mnemonic)}"
        f"\nReading Mnemonic: {strip_markup(subject.reading_mnemonic)}\n"
    )


class LessonSession:
    """Show new subjects one after another until the list ends or the learner quits."""

    def __init__(
        self,
        client: SubjectRepository,
        subject_ids: Sequence[int],
        display: Display,
        renderer: Optional[Renderer] = None,
    ) -> None:
        self.client = client
        self.subject_ids = list(subject_ids)
        self.display = display
        self.renderer: Renderer = renderer or AsciiRenderer()
        self.current_index = 0
        self.summary = SessionSummary(kind=LESSON, total=len(self.subject_ids))

    def run(self) -> SessionSummary:
        if not self.subject_ids:
            self.display.show("No lessons available!")
            return self.summary

        self.display.show(f"Starting lesson session with {len(self.subject_ids)} items")
        try:
            while self.current_index < len(self.subject_ids):
                self.show_current_lesson()
                self.summary.completed += 1
                command = self.display.prompt("Press Enter for next lesson, 'q' to quit")
                if answers.normalize(command) == QUIT_COMMAND:
                    break
                self.current_index += 1
        except KanikaniError as e:
            logger.warning("Lesson session aborted: %s", e)
            self.summary.aborted = True
            self.summary.error = str(e)
            self.display.show(f"Error during lesson session: {e}")
            return self.summary

        self.display.show("Lesson session complete!")
        return self.summary

    def show_current_lesson(self) -> Subject:
        subject = self.client.fetch_subject(self.subject_ids[self.current_index])
        _present_subject(subject, self.client, self.renderer, self.display)
        self.display.show(lesson_text(subject))
        return subject
