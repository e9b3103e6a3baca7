"""Slot grid value objects for appointment scheduling."""

import math
import re
from dataclasses import dataclass, field
from typing import Dict, Iterable, Iterator, List, Sequence, Tuple

from ..errors import ValidationError

_LABEL_PATTERN = re.compile(r"^(\d{2}):(\d{2})$")
MINUTES_PER_DAY = 24 * 60


def format_label(minutes: int) -> str:
    """Format minutes since midnight as a zero-padded HH:MM label."""
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def parse_label(label: str) -> int:
    """Parse an HH:MM label into minutes since midnight."""
    match = _LABEL_PATTERN.match(label or "")
    if not match:
        raise ValidationError(f"Invalid time slot format: {label!r} (expected HH:MM)")

    hours, minutes = int(match.group(1)), int(match.group(2))
    if hours > 23 or minutes > 59:
        raise ValidationError(f"Invalid time slot: {label}")
    return hours * 60 + minutes


def span_labels(start: str, duration_minutes: int, granularity_minutes: int) -> List[str]:
    """Labels covered by a booking of the given duration starting at start."""
    first = parse_label(start)
    units = max(1, duration_minutes // granularity_minutes)
    return [format_label(first + k * granularity_minutes) for k in range(units)]


@dataclass(frozen=True)
class ExclusionWindow:
    """Half-open interval [start, end) of the day during which no slot may start."""

    start_minutes: int
    end_minutes: int

    def __post_init__(self) -> None:
        """Validate window bounds."""
        if not 0 <= self.start_minutes < self.end_minutes <= MINUTES_PER_DAY:
            raise ValueError("Exclusion window start must be before its end")

    @classmethod
    def parse(cls, value: str) -> "ExclusionWindow":
        """Build a window from an 'HH:MM-HH:MM' string."""
        try:
            start, end = (part.strip() for part in value.split("-"))
        except ValueError:
            raise ValueError(f"Invalid exclusion window: {value!r} (expected HH:MM-HH:MM)") from None
        return cls(parse_label(start), parse_label(end))

    def contains(self, minutes: int) -> bool:
        """Check whether a minute offset falls inside the window."""
        return self.start_minutes <= minutes < self.end_minutes

    def intersects(self, start_minutes: int, end_minutes: int) -> bool:
        """Check whether the window overlaps the open interval (start, end)."""
        return self.start_minutes < end_minutes and self.end_minutes > start_minutes

    def __str__(self) -> str:
        return f"{format_label(self.start_minutes)}-{format_label(self.end_minutes)}"


@dataclass(frozen=True)
class SlotGridConfig:
    """Working-hours configuration the grid is generated from."""

    granularity_minutes: int = 30
    start_hour: float = 6
    end_limit: float = 20.5
    exclusion_windows: Tuple[ExclusionWindow, ...] = ()
    valid_durations: Tuple[int, ...] = (30, 60)

    def __post_init__(self) -> None:
        """Validate configuration values."""
        if self.granularity_minutes <= 0:
            raise ValueError("Slot granularity must be positive")
        if self.start_hour < 0 or self.end_limit > 24:
            raise ValueError("Working hours must lie within a single day")
        if self.start_hour >= self.end_limit:
            raise ValueError("Working hours start must be before the end limit")
        if not self.valid_durations:
            raise ValueError("At least one valid duration is required")
        for duration in self.valid_durations:
            if duration <= 0 or duration % self.granularity_minutes:
                raise ValueError(
                    f"Duration {duration} is not a positive multiple of {self.granularity_minutes} minutes"
                )

    @property
    def start_minutes(self) -> int:
        """First minute of the working window."""
        return int(self.start_hour * 60)

    @property
    def end_minutes(self) -> int:
        """First minute that is no longer a valid start."""
        return math.floor(self.end_limit * 60)

    def units_for(self, duration_minutes: int) -> int:
        """Number of consecutive grid slots a duration spans."""
        if duration_minutes <= 0 or duration_minutes % self.granularity_minutes:
            raise ValidationError(
                f"Duration must be a positive multiple of {self.granularity_minutes} minutes"
            )
        return duration_minutes // self.granularity_minutes


@dataclass(frozen=True)
class SlotGrid:
    """Ordered slot-start labels of one business day."""

    granularity_minutes: int
    minutes: Tuple[int, ...]
    exclusion_windows: Tuple[ExclusionWindow, ...] = ()
    _positions: Dict[str, int] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        positions = {format_label(value): index for index, value in enumerate(self.minutes)}
        object.__setattr__(self, "_positions", positions)

    @property
    def labels(self) -> List[str]:
        """Slot labels in grid order."""
        return [format_label(value) for value in self.minutes]

    def __len__(self) -> int:
        return len(self.minutes)

    def __iter__(self) -> Iterator[str]:
        return iter(self.labels)

    def __contains__(self, label: object) -> bool:
        return label in self._positions

    def __getitem__(self, index: int) -> str:
        return format_label(self.minutes[index])

    def index_of(self, label: str) -> int:
        """Grid position of a label."""
        try:
            return self._positions[label]
        except KeyError:
            raise ValidationError(f"Time slot {label} is not on the schedule") from None

    def is_adjacent(self, index: int) -> bool:
        """Whether position index + 1 directly follows position index.

        Two positions are adjacent only when they are one granularity step apart
        and no exclusion window lies between them.
        """
        if index < 0 or index + 1 >= len(self.minutes):
            return False

        current, following = self.minutes[index], self.minutes[index + 1]
        if following - current != self.granularity_minutes:
            return False
        return not any(window.intersects(current, following) for window in self.exclusion_windows)

    def label_run(self, start: str, units: int) -> List[str]:
        """The labels a booking of `units` slots starting at `start` needs."""
        if units < 1:
            raise ValidationError("A booking must span at least one slot")

        index = self.index_of(start)
        if index + units > len(self.minutes):
            raise ValidationError(
                f"A {units * self.granularity_minutes}-minute booking at {start} runs past the end of the day"
            )

        for position in range(index, index + units - 1):
            if not self.is_adjacent(position):
                raise ValidationError(
                    f"A {units * self.granularity_minutes}-minute booking at {start} "
                    f"crosses a break after {self[position]}"
                )

        return [self[position] for position in range(index, index + units)]


def parse_exclusion_windows(values: Iterable[str]) -> Tuple[ExclusionWindow, ...]:
    """Parse a collection of 'HH:MM-HH:MM' strings."""
    return tuple(ExclusionWindow.parse(value) for value in values if value.strip())


def parse_durations(values: Sequence[str]) -> Tuple[int, ...]:
    """Parse duration strings into sorted unique minute values."""
    return tuple(sorted({int(value) for value in values if str(value).strip()}))
