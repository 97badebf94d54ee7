import logging

from fixtures import ANSWER_ANCHORED_TEXT, BLANK_LINE_TEXT, NUMBERED_TEXT

from quizbook.quizzer import parser as qp
from quizbook.quizzer.models import PLACEHOLDER_OPTION_TEXT


def test_single_line_question_with_trailing_answer():
    questions = qp.parse_questions("1. 2+2=? A.3 B.4 C.5 D.6 答案：B")
    assert len(questions) == 1
    question = questions[0]
    assert question.number == "1."
    assert question.title == "2+2=?"
    assert [option.text for option in question.options] == [
        "3",
        "4",
        "5",
        "6",
    ]
    assert question.answer == "B"
    assert question.is_multiple_choice is False


def test_answer_anchored_segmentation_and_score():
    result = qp.segment(ANSWER_ANCHORED_TEXT)
    assert result.strategy == "answer_anchored"
    assert len(result.blocks) == 2

    first, second = qp.parse_questions(ANSWER_ANCHORED_TEXT)
    assert first.score == "2"
    assert first.title == "2+2=?"
    assert first.answer == "B"
    assert second.title == "下列哪些是偶数"
    assert second.answer == "AC"
    assert second.is_multiple_choice is True
    assert second.user_answers == []


def test_bracketed_answer_overrides_trailing_marker():
    question = qp.parse_block("1. 下列哪些是偶数（AC） A.2 B.3 C.4 D.5 答案：B")
    assert question.answer == "AC"
    assert question.title == "下列哪些是偶数（）"


def test_numbered_segmentation_without_answers():
    result = qp.segment(NUMBERED_TEXT)
    assert result.strategy == "numbered"
    assert len(result.blocks) == 2

    questions = qp.parse_questions(NUMBERED_TEXT)
    assert [q.title for q in questions] == ["第一题", "第二题"]
    assert all(q.answer == "" for q in questions)
    assert qp.usable_questions(questions) == []


def test_blank_line_segmentation_skips_prose():
    result = qp.segment(BLANK_LINE_TEXT)
    assert result.strategy == "blank_line"
    assert len(result.blocks) == 2
    titles = [q.title for q in qp.parse_questions(BLANK_LINE_TEXT)]
    assert titles == ["哪一个是质数", "哪一个是偶数"]


def test_segment_reports_none_for_unrecognised_text():
    assert qp.segment("").strategy == "none"
    assert qp.segment(None).blocks == ()
    assert qp.segment("just some prose").strategy == "none"
    assert qp.parse_questions("just some prose") == []


def test_normalize_text_unifies_newlines():
    assert qp.normalize_text("a\r\nb\rc\n\n\n\nd  ") == "a\nb\nc\n\nd"
    assert qp.normalize_text(None) == ""


def test_missing_options_get_placeholders():
    question = qp.parse_block("2. 只有两个选项 A.是 B.否 答案：A")
    assert [option.label for option in question.options] == [
        "A",
        "B",
        "C",
        "D",
    ]
    assert question.options[2].text == PLACEHOLDER_OPTION_TEXT
    assert question.options[3].text == PLACEHOLDER_OPTION_TEXT
    assert question.answer == "A"


def test_first_occurrence_of_a_label_wins():
    question = qp.parse_block("题目 A.一 B.二 A.重复 C.三 D.四 答案：C")
    assert question.option_for("A").text == "一"
    assert question.option_for("C").text == "三"


def test_line_leading_labels_used_without_punctuated_markers():
    block = "3. 颜色\nA 红\nB 绿\nC 蓝\nD 黄\n答案：D"
    question = qp.parse_block(block)
    assert question.title == "颜色"
    assert [option.text for option in question.options] == [
        "红",
        "绿",
        "蓝",
        "黄",
    ]
    assert question.answer == "D"


def test_compact_options_without_spaces_are_split():
    numeric = qp.parse_questions("1. 2+2=? A.3B.4C.5D.6 答案：B")[0]
    assert numeric.title == "2+2=?"
    assert [option.text for option in numeric.options] == [
        "3",
        "4",
        "5",
        "6",
    ]
    assert numeric.answer == "B"

    words = qp.parse_questions(
        "2. 天是蓝的 A.trueB.falseC.maybeD.never 答案：A"
    )[0]
    assert [option.text for option in words.options] == [
        "true",
        "false",
        "maybe",
        "never",
    ]


def test_glued_letters_in_title_are_not_option_markers():
    question = qp.parse_block("Capital of the USA. A.DC B.NY C.LA D.SF 答案：A")
    assert question.title == "Capital of the USA."
    assert question.option_for("A").text == "DC"
    assert question.option_for("D").text == "SF"


def test_title_starting_with_a_label_is_kept_for_line_options():
    block = "1. A cat has how many legs?\nA 2\nB 4\nC 6\nD 8\n答案：B"
    question = qp.parse_block(block)
    assert question.title == "A cat has how many legs?"
    assert [option.text for option in question.options] == [
        "2",
        "4",
        "6",
        "8",
    ]


def test_single_line_label_is_not_an_option_list():
    question = qp.parse_block("说明\nA 只有一行")
    assert question.title == "说明\nA 只有一行"
    assert all(
        option.text == PLACEHOLDER_OPTION_TEXT for option in question.options
    )


def test_lowercase_bracketed_answer_overrides_trailing_marker():
    question = qp.parse_block("1. 哪些是偶数(ac) A.2 B.3 C.4 D.5 答案：B")
    assert question.answer == "AC"
    assert question.title == "哪些是偶数()"


def test_answer_letters_are_canonicalised():
    question = qp.parse_block("多选 A.x B.y C.z D.w 答案：CA")
    assert question.answer == "AC"


def test_block_without_anything_degrades_instead_of_raising():
    question = qp.parse_block("无法识别的内容")
    assert question.title == "无法识别的内容"
    assert question.answer == ""
    assert all(
        option.text == PLACEHOLDER_OPTION_TEXT for option in question.options
    )


def test_parsing_is_deterministic():
    first = [q.to_dict() for q in qp.parse_questions(ANSWER_ANCHORED_TEXT)]
    second = [q.to_dict() for q in qp.parse_questions(ANSWER_ANCHORED_TEXT)]
    assert first == second


def test_custom_strategies_are_tried_in_order():
    calls = []

    def never(text):
        calls.append("never")
        return []

    def whole(text):
        calls.append("whole")
        return [text]

    parser = qp.QuestionParser([("never", never), ("whole", whole)])
    questions = parser.parse("题目 A.1 B.2 C.3 D.4 答案：A")
    assert calls == ["never", "whole"]
    assert questions[0].answer == "A"


def test_degraded_blocks_are_logged(caplog):
    logger = logging.getLogger("tests.parser")
    with caplog.at_level(logging.DEBUG, logger="tests.parser"):
        qp.parse_questions(NUMBERED_TEXT, logger=logger)
    degraded = [
        record
        for record in caplog.records
        if record.getMessage() == "Degraded question block"
    ]
    assert len(degraded) == 2
    assert degraded[0].missing_answer is True
    assert degraded[0].block_index == 0
