from datetime import datetime, timezone

import pytest

from extraction_validation import (
    FALLBACK_SUMMARY,
    fallback_extraction,
    normalize_inline,
    validate_extraction,
)
from models import ActionItem, MeetingExtraction

RECORDED = datetime(2024, 3, 5, 14, 30, tzinfo=timezone.utc)


def make_extraction(**overrides) -> MeetingExtraction:
    fields = dict(
        title="Weekly Sync",
        date="2024-03-05",
        summary="Discussed Q2 roadmap.",
        decisions=["Ship v2"],
        action_items=[ActionItem(owner="Ana", task="Draft spec")],
        open_questions=[],
        key_points=["Budget flat"],
    )
    fields.update(overrides)
    return MeetingExtraction(**fields)


class TestValidateExtraction:
    def test_clean_extraction_unchanged(self):
        extraction = make_extraction()
        assert validate_extraction(extraction, RECORDED) == extraction

    def test_blank_title_becomes_untitled(self):
        result = validate_extraction(make_extraction(title="  \n "), RECORDED)
        assert result.title == "Untitled"

    @pytest.mark.parametrize("bad_date", ["", "March 5", "2024/03/05", "05-03-2024"])
    def test_bad_date_replaced_with_recording_day(self, bad_date):
        result = validate_extraction(make_extraction(date=bad_date), RECORDED)
        assert result.date == "2024-03-05"

    def test_list_items_trimmed_and_empties_dropped(self):
        result = validate_extraction(
            make_extraction(decisions=["  a  ", "", "   ", "b\nc"], key_points=["\t"]),
            RECORDED,
        )
        assert result.decisions == ["a", "b c"]
        assert result.key_points == []

    def test_action_items_need_owner_or_task(self):
        result = validate_extraction(
            make_extraction(action_items=[
                ActionItem(owner=" ", task=" "),
                ActionItem(owner="", task="Book room"),
                ActionItem(owner="Bo\r\n", task="Send\nnotes"),
            ]),
            RECORDED,
        )
        assert result.action_items == [
            ActionItem(owner="", task="Book room"),
            ActionItem(owner="Bo", task="Send notes"),
        ]

    def test_summary_keeps_paragraph_breaks(self):
        result = validate_extraction(make_extraction(summary="  One.\r\n\r\nTwo.  "), RECORDED)
        assert result.summary == "One.\n\nTwo."

    def test_idempotent(self):
        messy = make_extraction(
            title="  Weekly \n  Sync ",
            date="soon",
            summary="\r\nx\r\n",
            decisions=[" a ", ""],
            action_items=[ActionItem(owner=" Ana ", task=" Draft   spec ")],
        )
        once = validate_extraction(messy, RECORDED)
        assert validate_extraction(once, RECORDED) == once


class TestFallback:
    def test_fallback_shape(self):
        result = fallback_extraction(RECORDED)
        assert result.title == "Untitled"
        assert result.date == "2024-03-05"
        assert result.summary == FALLBACK_SUMMARY
        assert result.decisions == []
        assert result.action_items == []
        assert result.open_questions == []
        assert result.key_points == []


def test_normalize_inline_collapses_spaces():
    assert normalize_inline("  a   b\n\tc ") == "a b c"
