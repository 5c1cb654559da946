"""
Day-pair and time-slot value types.

Weekdays use ISO numbering (Monday=1 .. Sunday=7). A day-pair is two
non-consecutive weekdays; a time-slot indexes a fixed table of tenant-local
publish hours split into a morning half (0-4) and an evening half (5-9).
Pairs whose first weekday is odd publish in the morning, the others in the
evening, so consecutive calendar days stay roughly twelve hours apart.
"""
from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Optional, Tuple


class Weekday(IntEnum):
    MONDAY = 1
    TUESDAY = 2
    WEDNESDAY = 3
    THURSDAY = 4
    FRIDAY = 5
    SATURDAY = 6
    SUNDAY = 7

    @property
    def short(self) -> str:
        return self.name[:3].title()


class Half(Enum):
    MORNING = "morning"
    EVENING = "evening"

    @property
    def slots(self) -> Tuple["TimeSlot", ...]:
        return tuple(s for s in TimeSlot if s.half is self)


# Local publish hour for each slot index
SLOT_HOURS = (7, 8, 9, 10, 11, 13, 14, 15, 16, 17)


class TimeSlot(IntEnum):
    SLOT_0 = 0
    SLOT_1 = 1
    SLOT_2 = 2
    SLOT_3 = 3
    SLOT_4 = 4
    SLOT_5 = 5
    SLOT_6 = 6
    SLOT_7 = 7
    SLOT_8 = 8
    SLOT_9 = 9

    @property
    def hour(self) -> int:
        return SLOT_HOURS[self.value]

    @property
    def label(self) -> str:
        return f"{self.hour:02d}:00"

    @property
    def half(self) -> Half:
        return Half.MORNING if self.value <= 4 else Half.EVENING


class DayPair(Enum):
    MON_WED = (Weekday.MONDAY, Weekday.WEDNESDAY)
    TUE_THU = (Weekday.TUESDAY, Weekday.THURSDAY)
    WED_FRI = (Weekday.WEDNESDAY, Weekday.FRIDAY)
    MON_THU = (Weekday.MONDAY, Weekday.THURSDAY)
    TUE_FRI = (Weekday.TUESDAY, Weekday.FRIDAY)
    MON_FRI = (Weekday.MONDAY, Weekday.FRIDAY)

    @property
    def days(self) -> Tuple[Weekday, Weekday]:
        return self.value

    @property
    def first(self) -> Weekday:
        return self.value[0]

    @property
    def half(self) -> Half:
        return Half.MORNING if self.first % 2 == 1 else Half.EVENING

    @property
    def allowed_slots(self) -> Tuple[TimeSlot, ...]:
        return self.half.slots

    @property
    def label(self) -> str:
        return f"{self.value[0].name.title()} & {self.value[1].name.title()}"

    def includes(self, weekday: int) -> bool:
        return weekday in self.value

    @classmethod
    def parse(cls, name: Optional[str]) -> Optional["DayPair"]:
        """Stored name -> member, None for unset or unrecognised values."""
        if not name:
            return None
        try:
            return cls[name]
        except KeyError:
            return None


@dataclass(frozen=True)
class SlotAssignment:
    day_pair: DayPair
    time_slot: TimeSlot
    # set when the allocator had to fall back to a colliding or over-capacity slot
    collides: bool = False
    overbooked: bool = False

    @property
    def keys(self) -> Tuple[Tuple[int, int], Tuple[int, int]]:
        """The two (weekday, slot) capacity keys this assignment occupies."""
        d1, d2 = self.day_pair.days
        return (int(d1), int(self.time_slot)), (int(d2), int(self.time_slot))

    def describe(self) -> str:
        d1, d2 = self.day_pair.days
        return f"{d1.short} & {d2.short} @ {self.time_slot.label}"

    def to_dict(self):
        return {
            "day_pair": self.day_pair.name,
            "days": self.day_pair.label,
            "time_slot": int(self.time_slot),
            "time": self.time_slot.label,
            "collides": self.collides,
            "overbooked": self.overbooked,
        }


def parse_slot(value: Optional[int]) -> Optional[TimeSlot]:
    if value is None:
        return None
    try:
        return TimeSlot(int(value))
    except ValueError:
        return None


def assignment_of(tenant) -> Optional[SlotAssignment]:
    """Typed view of a tenant's stored assignment, None if incomplete or invalid."""
    pair = DayPair.parse(tenant.schedule_day_pair)
    slot = parse_slot(tenant.schedule_time_slot)
    if pair is None or slot is None:
        return None
    return SlotAssignment(pair, slot)
