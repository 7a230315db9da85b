"""Unit tests for period filters, slot membership, placement and conflict detection."""

from datetime import date, datetime

import pytest

from agenda.features.calendar.schemas import CATEGORY_COLORS, DEFAULT_COLOR, ItemType, category_color
from agenda.features.timegrid.placement import (
    MIN_HEIGHT_PERCENT,
    filter_items,
    find_conflicts,
    get_items_for_day,
    get_items_for_month,
    get_items_for_week,
    get_slot_items,
    has_time_conflict,
    in_slot,
    layout_day,
    layout_week,
    place_item,
)
from fakes import make_item

DAY = date(2025, 4, 22)


def at(hour: int, minute: int = 0, day: date = DAY) -> datetime:
    return datetime(day.year, day.month, day.day, hour, minute)


class TestPeriodFilters:
    def test_day_filter_includes_items_crossing_midnight(self):
        overnight = make_item(datetime(2025, 4, 21, 23, 0), at(1), item_id="n")
        other_day = make_item(datetime(2025, 4, 23, 9), datetime(2025, 4, 23, 10), item_id="o")
        assert get_items_for_day([overnight, other_day], DAY) == [overnight]

    def test_week_and_month_filters(self):
        inside = make_item(at(9), at(10), item_id="a")
        next_week = make_item(datetime(2025, 4, 28, 9), datetime(2025, 4, 28, 10), item_id="b")
        next_month = make_item(datetime(2025, 5, 2, 9), datetime(2025, 5, 2, 10), item_id="c")
        items = [inside, next_week, next_month]
        assert get_items_for_week(items, DAY) == [inside]
        assert get_items_for_month(items, DAY) == [inside, next_week]

    def test_search_is_case_insensitive_substring(self):
        standup = make_item(at(9), at(10), title="Daily Standup", item_id="a")
        review = make_item(at(11), at(12), title="Code review", item_id="b")
        assert filter_items([standup, review], "STAND") == [standup]
        assert filter_items([standup, review], "") == [standup, review]
        assert filter_items([standup, review], None) == [standup, review]


class TestSlotMembership:
    def test_hour_nine_union(self):
        ends_inside = make_item(at(8, 45), at(9, 15), item_id="b")
        spans = make_item(at(9), at(11), item_id="c")
        before = make_item(at(7), at(8, 30), item_id="x")
        assert get_slot_items([ends_inside, spans, before], DAY, 9) == [ends_inside, spans]

    def test_each_clause_on_its_own(self):
        slot_start = at(9)
        assert in_slot(make_item(at(9, 30), at(9, 45)), slot_start)  # starts inside
        assert in_slot(make_item(at(8), at(10)), slot_start)  # ends at slot end
        assert in_slot(make_item(at(6), at(14)), slot_start)  # spans
        assert not in_slot(make_item(at(8), at(9)), slot_start)  # ends at slot start
        assert not in_slot(make_item(at(10), at(11)), slot_start)  # starts at slot end

    def test_long_item_touches_every_hour_it_covers(self):
        long_item = make_item(at(9), at(12), item_id="long")
        layout = layout_day([long_item], DAY)
        members = [slot.slot.hour for slot in layout.slots if slot.items]
        assert members == [9, 10, 11]
        drawn = [slot.slot.hour for slot in layout.slots if slot.placed]
        assert drawn == [9]


class TestPlacement:
    def test_offset_and_height(self):
        placement = place_item(make_item(at(10, 15), at(12, 15)))
        assert placement.top_percent == pytest.approx(25.0)
        assert placement.height_percent == pytest.approx(200.0)

    def test_minimum_height(self):
        placement = place_item(make_item(at(10), at(10, 5)))
        assert placement.height_percent == MIN_HEIGHT_PERCENT

    def test_layout_colors_follow_type(self):
        event = make_item(at(9), at(10), item_id="e", type="event")
        task = make_item(at(11), at(12), item_id="t", type="TASK")
        layout = layout_day([event, task], DAY)
        assert layout.slots[9].placed[0].color == CATEGORY_COLORS[ItemType.EVENT]
        assert layout.slots[11].placed[0].color == CATEGORY_COLORS[ItemType.TASK]
        assert layout.day == DAY
        assert len(layout.slots) == 24

    def test_week_layout_starts_monday(self):
        layouts = layout_week([make_item(at(9), at(10))], DAY)
        assert [layout.day for layout in layouts][0] == date(2025, 4, 21)
        assert [layout.day for layout in layouts][-1] == date(2025, 4, 27)
        assert layouts[1].slots[9].placed


class TestCategoryColor:
    def test_lookup_is_case_insensitive(self):
        assert category_color("event") == CATEGORY_COLORS[ItemType.EVENT]
        assert category_color("Task") == CATEGORY_COLORS[ItemType.TASK]
        assert category_color(ItemType.TASK) == CATEGORY_COLORS[ItemType.TASK]

    def test_unknown_or_missing_is_neutral(self):
        assert category_color("holiday") == DEFAULT_COLOR
        assert category_color(None) == DEFAULT_COLOR


class TestConflicts:
    def test_overlapping_start(self):
        existing = make_item(at(9), at(10), item_id="e1")
        candidate = make_item(at(9, 30), at(10, 30))
        assert has_time_conflict([existing], candidate)

    def test_symmetry(self):
        a = make_item(at(9), at(10, 30), item_id="a")
        b = make_item(at(10), at(11), item_id="b")
        assert has_time_conflict([a], b)
        assert has_time_conflict([b], a)

    def test_touching_boundaries_do_not_conflict(self):
        a = make_item(at(9), at(10), item_id="a")
        b = make_item(at(10), at(11), item_id="b")
        assert not has_time_conflict([a], b)
        assert not has_time_conflict([b], a)

    def test_candidate_covering_existing(self):
        inner = make_item(at(10), at(10, 30), item_id="inner")
        outer = make_item(at(9), at(12), item_id="outer")
        assert find_conflicts([inner], outer) == [inner]
        assert find_conflicts([outer], inner) == [outer]

    def test_unchanged_update_does_not_conflict_with_itself(self):
        item = make_item(at(9), at(10), item_id="same")
        assert not has_time_conflict([item], item)
        renamed = item.model_copy(update={"title": "Renamed"})
        assert not has_time_conflict([item], renamed)

    def test_unsaved_candidates_never_match_by_id(self):
        existing = make_item(at(9), at(10))
        candidate = make_item(at(9), at(10))
        assert has_time_conflict([existing], candidate)

    def test_empty_collection(self):
        assert not has_time_conflict([], make_item(at(9), at(10)))
