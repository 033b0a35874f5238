"""Tests for analysis reply parsing."""

from centered.models import MoodCount, ParsedAnalysis
from centered.parsing import (
    parse_analysis,
    parse_mood_counts,
    parse_summary,
    parse_wellness_score,
    split_paragraphs,
)

REPLY = (
    "Joyful(3), Anxious(2), Hopeful(5)\n\n"
    "- Summary: A steady week of prayer.\n"
    "- Action & goal for next week: Read a psalm each morning.\n\n"
    "87"
)


class TestSplitParagraphs:
    def test_strips_before_splitting(self):
        assert split_paragraphs("\n\na\n\nb\n\n") == ["a", "b"]

    def test_single_newline_does_not_split(self):
        assert split_paragraphs("a\nb") == ["a\nb"]


class TestMoodCounts:
    def test_well_formed_tally(self):
        assert parse_mood_counts(REPLY) == [
            MoodCount(order=0, mood="Joyful", count=3),
            MoodCount(order=1, mood="Anxious", count=2),
            MoodCount(order=2, mood="Hopeful", count=5),
        ]

    def test_uses_last_parentheses(self):
        moods = parse_mood_counts("Calm (at last)(4)")
        assert moods == [MoodCount(order=0, mood="Calm (at last)", count=4)]

    def test_signed_counts(self):
        moods = parse_mood_counts("Happy(+3), Sad(-1)")
        assert [m.count for m in moods] == [3, -1]

    def test_unreadable_count_is_skipped_and_leaves_gap(self):
        moods = parse_mood_counts("Tired(many), Calm(2)")
        assert moods == [MoodCount(order=1, mood="Calm", count=2)]

    def test_missing_parentheses_skipped(self):
        assert parse_mood_counts("Joyful, Calm") == []

    def test_reversed_parentheses_skipped(self):
        assert parse_mood_counts("Joyful)3(") == []

    def test_empty_pieces_dropped(self):
        moods = parse_mood_counts("Joyful(3),,Calm(1)")
        assert [(m.order, m.mood) for m in moods] == [(0, "Joyful"), (1, "Calm")]

    def test_only_first_paragraph_read(self):
        moods = parse_mood_counts("Joyful(3)\n\nCalm(1)")
        assert [m.mood for m in moods] == ["Joyful"]

    def test_empty_reply(self):
        assert parse_mood_counts("") == []


class TestWellnessScore:
    def test_plain_score(self):
        assert parse_wellness_score(REPLY) == 87

    def test_last_two_digits_of_final_paragraph(self):
        assert parse_wellness_score("a(1)\n\nsummary\n\nScore: 91 out of 100") == 0

    def test_single_digit_is_none(self):
        assert parse_wellness_score("a(1)\n\nsummary\n\n7") is None

    def test_no_digits_is_none(self):
        assert parse_wellness_score("a(1)\n\nsummary\n\nninety") is None

    def test_trailing_whitespace_ignored(self):
        assert parse_wellness_score(REPLY + "\n\n  \n") == 87

    def test_single_paragraph_reads_itself(self):
        assert parse_wellness_score("Joyful(3), Calm(12)") == 12


class TestSummary:
    def test_second_paragraph(self):
        assert parse_summary(REPLY) == (
            "- Summary: A steady week of prayer.\n"
            "- Action & goal for next week: Read a psalm each morning."
        )

    def test_missing_second_paragraph(self):
        assert parse_summary("Joyful(3)") is None

    def test_blank_second_paragraph(self):
        assert parse_summary("a(1)\n\n   \n\n90") is None


class TestParseAnalysis:
    def test_all_fields(self):
        parsed = parse_analysis(REPLY)
        assert len(parsed.mood_counts) == 3
        assert parsed.wellness_score == 87
        assert parsed.summary.startswith("- Summary:")

    def test_none_reply(self):
        assert parse_analysis(None) == ParsedAnalysis()

    def test_garbage_never_raises(self):
        parsed = parse_analysis("(((,,,)))\n\n\n\n")
        assert parsed.mood_counts == ()
        assert parsed.wellness_score is None

    def test_score_in_sentence(self):
        reply = "Calm(2)\n\nsummary\n\n...your faith score this week is 87."
        assert parse_wellness_score(reply) == 87

    def test_three_plain_paragraphs(self):
        assert parse_summary("para1\n\npara2 here\n\npara3") == "para2 here"
