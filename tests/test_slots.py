"""
Tests for day-pair and time-slot value types
"""

from types import SimpleNamespace

from autopublish.scheduling.slots import (
    DayPair, Half, SLOT_HOURS, SlotAssignment, TimeSlot, Weekday, assignment_of, parse_slot,
)


def test_slot_hours_are_distinct():
    assert len(set(SLOT_HOURS)) == len(SLOT_HOURS) == 10


def test_time_slot_labels_and_halves():
    assert TimeSlot.SLOT_0.label == "07:00"
    assert TimeSlot.SLOT_4.label == "11:00"
    assert TimeSlot.SLOT_5.label == "13:00"
    assert TimeSlot.SLOT_9.label == "17:00"
    assert [s.half for s in (TimeSlot.SLOT_4, TimeSlot.SLOT_5)] == [Half.MORNING, Half.EVENING]


def test_pairs_are_non_consecutive():
    for pair in DayPair:
        first, second = pair.days
        assert second - first >= 2, f"{pair.name} has consecutive days"


def test_parity_rule_picks_half():
    morning = {p for p in DayPair if p.half is Half.MORNING}
    assert morning == {DayPair.MON_WED, DayPair.WED_FRI, DayPair.MON_THU, DayPair.MON_FRI}
    assert DayPair.TUE_THU.allowed_slots == tuple(TimeSlot(i) for i in range(5, 10))
    assert DayPair.MON_WED.allowed_slots == tuple(TimeSlot(i) for i in range(0, 5))


def test_parse_rejects_unknown_values():
    assert DayPair.parse("TUE_THU") is DayPair.TUE_THU
    assert DayPair.parse("SAT_SUN") is None
    assert DayPair.parse(None) is None
    assert parse_slot(3) is TimeSlot.SLOT_3
    assert parse_slot(10) is None
    assert parse_slot(None) is None


def test_assignment_keys_and_description():
    a = SlotAssignment(DayPair.MON_WED, TimeSlot.SLOT_2)
    assert a.keys == ((1, 2), (3, 2))
    assert a.describe() == "Mon & Wed @ 09:00"
    assert a.to_dict()["days"] == "Monday & Wednesday"


def test_assignment_of_tenant():
    tenant = SimpleNamespace(schedule_day_pair="TUE_FRI", schedule_time_slot=7)
    assert assignment_of(tenant) == SlotAssignment(DayPair.TUE_FRI, TimeSlot.SLOT_7)

    half_set = SimpleNamespace(schedule_day_pair="TUE_FRI", schedule_time_slot=None)
    assert assignment_of(half_set) is None


def test_weekday_short_names():
    assert Weekday.THURSDAY.short == "Thu"
    assert DayPair.TUE_THU.includes(Weekday.THURSDAY)
    assert not DayPair.TUE_THU.includes(Weekday.WEDNESDAY)
