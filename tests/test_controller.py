import random

from fixtures import ANSWER_ANCHORED_TEXT, NUMBERED_TEXT, make_question

from quizbook.controller import QuizController


def _answer(controller, *letters):
    for letter in letters:
        controller.session.set_answer(letter)
    return controller.submit()


def test_load_text_keeps_only_usable_questions(error_book):
    controller = QuizController(error_book)
    assert controller.load_text(ANSWER_ANCHORED_TEXT) == 2
    assert controller.has_questions is True
    assert controller.session.total == 2

    assert controller.load_text(NUMBERED_TEXT) == 0
    assert controller.has_questions is False


def test_completion_offer_fires_once_after_a_miss(error_book):
    controller = QuizController(error_book)
    controller.load_text(ANSWER_ANCHORED_TEXT)

    first = _answer(controller, "A")
    assert first.accepted is True
    assert first.is_correct is False
    assert first.offer_completion is False

    controller.session.next()
    second = _answer(controller, "A", "C")
    assert second.is_correct is True
    assert second.offer_completion is True
    assert controller.should_offer_completion() is True

    again = controller.submit()
    assert again.accepted is True
    assert again.offer_completion is False


def test_no_offer_when_every_answer_was_right(error_book):
    controller = QuizController(error_book)
    controller.load_questions([make_question("Q1", "B")])
    outcome = _answer(controller, "B")
    assert outcome.offer_completion is True
    assert controller.should_offer_completion() is False


def test_submit_without_selection_is_not_accepted(error_book):
    controller = QuizController(error_book)
    controller.load_questions([make_question("Q1", "B")])
    outcome = controller.submit()
    assert outcome.accepted is False
    assert error_book.session_error_count() == 0


def test_save_and_practice_then_return_to_progress(error_book):
    controller = QuizController(error_book)
    controller.load_text(ANSWER_ANCHORED_TEXT)
    _answer(controller, "A")
    controller.session.next()
    _answer(controller, "A", "C")

    collection = controller.save_and_practice()
    assert collection is not None
    assert controller.in_error_book_mode is True
    assert error_book.current_collection_id == collection.id
    assert controller.session.total == 1
    assert controller.session.current_question.user_answer is None

    _answer(controller, "B")
    assert error_book.get_collection(collection.id).question_count == 0
    assert controller.should_offer_completion() is False

    assert controller.switch_to_normal_mode() is True
    assert controller.in_error_book_mode is False
    assert controller.session.current_index == 1
    assert controller.session.correct_count == 1
    assert controller.session.questions[0].user_answer == "A"


def test_switch_to_error_book_reports_content(error_book):
    controller = QuizController(error_book)
    assert controller.switch_to_error_book_mode() is False

    controller.load_questions([make_question("Q1", "B")])
    _answer(controller, "C")
    assert controller.switch_to_error_book_mode() is True
    assert controller.in_error_book_mode is True


def test_start_error_collection_requires_questions(error_book):
    controller = QuizController(error_book)
    empty = error_book.create_collection("Empty", [])
    assert controller.start_error_collection("missing") is False
    assert controller.start_error_collection(empty.id) is False

    filled = error_book.create_collection("Set", [make_question("Q", "A")])
    assert controller.start_error_collection(filled.id) is True
    assert controller.session.total == 1
    assert controller.in_error_book_mode is True


def test_shuffle_reorders_with_seeded_rng(error_book):
    questions = [make_question(f"Q{i}", "A") for i in range(10)]
    controller = QuizController(
        error_book, shuffle=True, rng=random.Random(7)
    )
    controller.load_questions(questions)
    titles = [q.title for q in controller.session.questions]
    assert sorted(titles) == sorted(q.title for q in questions)

    expected = [q.title for q in questions]
    random.Random(7).shuffle(expected)
    assert titles == expected


def test_loaded_questions_are_not_mutated(error_book):
    source = [make_question("Q1", "B")]
    controller = QuizController(error_book)
    controller.load_questions(source)
    _answer(controller, "A")
    assert source[0].user_answer is None


def test_back_to_input_leaves_error_book_mode(error_book):
    controller = QuizController(error_book)
    controller.load_questions([make_question("Q1", "B")])
    controller.switch_to_error_book_mode()
    controller.back_to_input()
    assert controller.in_error_book_mode is False
