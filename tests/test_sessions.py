"""
Tests for review and lesson sessions.
Sessions run against in-memory fakes for the API, the display and the renderer.
"""

from typing import Any, Dict, List, Optional

import pytest

from kanikani.errors import DecodeError, TransportError
from kanikani.resources import Assignment
from kanikani.sessions import LessonSession, ReviewSession, StudyItem, lesson_text
from kanikani.subjects import CharacterImage, Meaning, Reading, Subject


def make_subject(subject_id: int, kind: str, characters: Optional[str], meanings: List[str],
                 readings: Optional[List[str]] = None, **extra: Any) -> Subject:
    return Subject(
        id=subject_id,
        kind=kind,
        characters=characters,
        meanings=[Meaning(m, primary=i == 0) for i, m in enumerate(meanings)],
        readings=[Reading(r, primary=i == 0) for i, r in enumerate(readings or [])],
        **extra,
    )


CAT = make_subject(1, "vocabulary", "猫", ["Cat"], ["ねこ"],
                   meaning_mnemonic="A <vocabulary>cat</vocabulary>.", reading_mnemonic="It says <reading>neko</reading>.")
DOG = make_subject(2, "kanji", "犬", ["Dog"], ["いぬ", "けん"])
GROUND = make_subject(3, "radical", "一", ["Ground"])
STICK = make_subject(4, "radical", None, ["Stick"],
                     character_images=[CharacterImage("https://files.example/stick.svg", "image/svg+xml")])
YES = make_subject(5, "kana_vocabulary", "はい", ["Yes"])


class FakeDisplay:
    def __init__(self, inputs: List[str]) -> None:
        self.inputs = list(inputs)
        self.shown: List[str] = []
        self.prompts: List[str] = []
        self.on_prompt = None

    def show(self, text: str) -> None:
        self.shown.append(text)

    def prompt(self, message: str) -> str:
        self.prompts.append(message)
        if self.on_prompt:
            self.on_prompt()
        if not self.inputs:
            raise AssertionError(f"Unexpected prompt: {message}")
        return self.inputs.pop(0)


class FakeRenderer:
    def __init__(self, fail_images: bool = False) -> None:
        self.fail_images = fail_images
        self.images: List[bytes] = []

    def render_text(self, characters: str) -> str:
        return f"[{characters}]"

    def render_image(self, data: bytes) -> str:
        if self.fail_images:
            raise DecodeError("Failed to parse SVG")
        self.images.append(data)
        return "[image]"


class FakeWaniKani:
    def __init__(self, subjects: List[Subject], failing_subjects: tuple = (), fail_submit: bool = False) -> None:
        self.subjects: Dict[int, Subject] = {s.id: s for s in subjects}
        self.failing_subjects = failing_subjects
        self.fail_submit = fail_submit
        self.fetched: List[int] = []
        self.submitted: List[tuple] = []
        self.images_fetched: List[str] = []

    def fetch_subject(self, subject_id: int) -> Subject:
        self.fetched.append(subject_id)
        if subject_id in self.failing_subjects:
            raise TransportError(f"Request to /subjects/{subject_id} failed: connection reset")
        return self.subjects[subject_id]

    def fetch_image(self, url: str) -> bytes:
        self.images_fetched.append(url)
        return b"<svg></svg>"

    def submit_review(self, assignment_id: int, incorrect_meaning_answers: int, incorrect_reading_answers: int) -> None:
        if self.fail_submit:
            raise TransportError("Request to /reviews failed with status code: 500")
        self.submitted.append((assignment_id, incorrect_meaning_answers, incorrect_reading_answers))


def review(client, refs, inputs, renderer=None):
    display = FakeDisplay(inputs)
    session = ReviewSession(client, refs, display, renderer=renderer or FakeRenderer())
    return session, display


def test_study_item_defaults():
    item = StudyItem(1, assignment_id=10)
    assert item.needs_meaning and item.needs_reading
    assert item.incorrect_meaning_answers == 0
    assert item.incorrect_reading_answers == 0
    assert not item.done


def test_radical_study_item_never_needs_reading():
    item = StudyItem(3, assignment_id=30, subject_type="radical")
    assert item.needs_reading is False
    item.needs_meaning = False
    assert item.done


def test_review_session_end_to_end():
    """One item right first time, one with a single wrong meaning answer."""
    client = FakeWaniKani([CAT, DOG])
    session, display = review(client, [(100, 1), (200, 2)], ["cat", "neko", "cat", "dog", "inu"])

    summary = session.run()

    assert session.items == {}
    assert client.submitted == [(100, 0, 0), (200, 1, 0)]
    assert summary.completed == 2
    assert summary.passed == 1
    assert summary.failed == 1
    assert summary.incorrect_meaning == 1
    assert not summary.aborted
    assert "Incorrect, try again" in display.shown
    assert display.shown[-1] == "Review session complete!"


def test_wrong_reading_is_counted_and_reprompted():
    client = FakeWaniKani([DOG])
    session, display = review(client, [(200, 2)], ["Dog", "inu?", "いぬ"])

    session.run()

    assert client.submitted == [(200, 0, 1)]
    assert display.prompts == [
        "Enter the meaning:",
        "Enter the reading (in hiragana or romaji):",
        "Enter the reading (in hiragana or romaji):",
    ]


def test_any_accepted_reading_passes():
    client = FakeWaniKani([DOG])
    session, _ = review(client, [(200, 2)], ["dog", "ken"])
    session.run()
    assert client.submitted == [(200, 0, 0)]


def test_radical_skips_reading_prompt():
    client = FakeWaniKani([GROUND])
    session, display = review(client, [(300, 3, "radical")], ["ground"])

    session.run()

    assert display.prompts == ["Enter the meaning:"]
    assert client.submitted == [(300, 0, 0)]


def test_radical_detected_when_subject_is_fetched():
    client = FakeWaniKani([GROUND])
    session, display = review(client, [(300, 3)], ["floor", "ground"])

    session.run()

    assert display.prompts == ["Enter the meaning:", "Enter the meaning:"]
    assert client.submitted == [(300, 1, 0)]


def test_kana_vocabulary_reading():
    client = FakeWaniKani([YES])
    session, _ = review(client, [(500, 5)], ["yes", "hai"])
    session.run()
    assert client.submitted == [(500, 0, 0)]


def test_items_are_reviewed_in_insertion_order():
    client = FakeWaniKani([CAT, DOG])
    session, _ = review(client, [(200, 2), (100, 1)], ["dog", "inu", "cat", "neko"])
    session.run()
    assert [s[0] for s in client.submitted] == [200, 100]


def test_assignment_records_are_accepted():
    client = FakeWaniKani([GROUND, CAT])
    refs = [
        Assignment(id=300, subject_id=3, subject_type="radical"),
        Assignment(id=100, subject_id=1, subject_type="vocabulary"),
    ]
    session, _ = review(client, refs, ["ground", "cat", "ねこ"])
    assert session.items[3].needs_reading is False
    session.run()
    assert client.submitted == [(300, 0, 0), (100, 0, 0)]


def test_subject_is_fetched_once_per_session():
    client = FakeWaniKani([CAT])
    session, _ = review(client, [(100, 1)], ["dog", "cat", "inu", "neko"])
    session.run()
    assert client.fetched == [1]
    assert client.submitted == [(100, 1, 1)]


def test_active_items_always_need_a_prompt():
    client = FakeWaniKani([CAT, DOG, GROUND])
    session, display = review(
        client,
        [(100, 1), (200, 2), (300, 3)],
        ["x", "cat", "neko", "dog", "x", "inu", "ground"],
    )
    submitted_before: List[int] = []

    def check_active_items() -> None:
        for item in session.items.values():
            assert item.needs_meaning or item.needs_reading
        done = [a for a, _, _ in client.submitted]
        assert len(done) == len(set(done))
        for assignment_id in done:
            assert assignment_id not in [i.assignment_id for i in session.items.values()]
        submitted_before.append(len(done))

    display.on_prompt = check_active_items
    session.run()

    assert session.items == {}
    assert sorted(a for a, _, _ in client.submitted) == [100, 200, 300]
    assert submitted_before == sorted(submitted_before)


def test_fetch_failure_aborts_without_submitting_in_flight_item():
    client = FakeWaniKani([CAT, DOG], failing_subjects=(2,))
    session, display = review(client, [(100, 1), (200, 2)], ["cat", "neko"])

    summary = session.run()

    assert client.submitted == [(100, 0, 0)]
    assert list(session.items) == [2]
    assert summary.aborted
    assert summary.completed == 1
    assert display.shown[-1] == "Error during review session: Request to /subjects/2 failed: connection reset"


def test_submit_failure_keeps_item_active():
    client = FakeWaniKani([CAT], fail_submit=True)
    session, display = review(client, [(100, 1)], ["cat", "neko"])

    summary = session.run()

    assert summary.aborted
    assert summary.completed == 0
    assert list(session.items) == [1]
    assert display.shown[-1].startswith("Error during review session:")


def test_separate_sink_receives_results():
    client = FakeWaniKani([CAT])
    sink = FakeWaniKani([])
    display = FakeDisplay(["cat", "neko"])
    ReviewSession(client, [(100, 1)], display, renderer=FakeRenderer(), sink=sink).run()
    assert sink.submitted == [(100, 0, 0)]
    assert client.submitted == []


def test_image_radical_is_rendered_from_fetched_asset():
    client = FakeWaniKani([STICK])
    renderer = FakeRenderer()
    session, display = review(client, [(400, 4, "radical")], ["stick"], renderer=renderer)

    session.run()

    assert renderer.images == [b"<svg></svg>"]
    assert "[image]" in display.shown
    assert client.submitted == [(400, 0, 0)]


def test_radical_image_is_fetched_once_across_retries():
    client = FakeWaniKani([STICK])
    renderer = FakeRenderer()
    session, display = review(client, [(400, 4, "radical")], ["x", "y", "stick"], renderer=renderer)

    session.run()

    assert client.fetched == [4]
    assert client.images_fetched == ["https://files.example/stick.svg"]
    assert len(renderer.images) == 1
    assert display.shown.count("[image]") == 3
    assert client.submitted == [(400, 2, 0)]


def test_undecodable_radical_image_aborts_session():
    client = FakeWaniKani([STICK])
    session, display = review(client, [(400, 4, "radical")], [], renderer=FakeRenderer(fail_images=True))

    summary = session.run()

    assert summary.aborted
    assert client.submitted == []
    assert display.shown[-1] == "Error during review session: Failed to parse SVG"


def test_empty_review_session():
    session, display = review(FakeWaniKani([]), [], [])
    summary = session.run()
    assert display.shown == ["No reviews available!"]
    assert summary.total == 0


def lesson(client, subject_ids, inputs):
    display = FakeDisplay(inputs)
    return LessonSession(client, subject_ids, display, renderer=FakeRenderer()), display


def test_lesson_walks_through_every_subject():
    client = FakeWaniKani([CAT, DOG, GROUND])
    session, display = lesson(client, [1, 2, 3], ["", "next", ""])

    summary = session.run()

    assert summary.completed == 3
    assert session.current_index == 3
    assert client.fetched == [1, 2, 3]
    assert client.submitted == []
    assert display.shown[0] == "Starting lesson session with 3 items"
    assert display.shown[-1] == "Lesson session complete!"


@pytest.mark.parametrize("quit_input", ["q", " Q "])
def test_lesson_quit_ends_early(quit_input):
    client = FakeWaniKani([CAT, DOG])
    session, display = lesson(client, [1, 2], [quit_input])

    summary = session.run()

    assert summary.completed == 1
    assert client.fetched == [1]
    assert display.shown[-1] == "Lesson session complete!"


def test_lesson_fetch_failure():
    client = FakeWaniKani([CAT], failing_subjects=(2,))
    session, display = lesson(client, [1, 2], [""])

    summary = session.run()

    assert summary.aborted
    assert summary.completed == 1
    assert display.shown[-1].startswith("Error during lesson session:")


def test_empty_lesson_session():
    session, display = lesson(FakeWaniKani([]), [], [])
    session.run()
    assert display.shown == ["No lessons available!"]


def test_lesson_text_per_kind():
    vocab = lesson_text(CAT)
    assert "Meaning: Cat" in vocab
    assert "Reading (hiragana or romaji): ねこ" in vocab
    assert "Meaning Mnemonic: A cat." in vocab
    assert "Reading Mnemonic: It says neko." in vocab

    radical = lesson_text(GROUND)
    assert "Meaning: Ground" in radical
    assert "Reading" not in radical

    kana = lesson_text(YES)
    assert "Meaning: Yes" in kana
    assert "Reading" not in kana
