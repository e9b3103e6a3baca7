"""Slot grid generation and availability calculation."""

from typing import AbstractSet, List, Optional

from ...domain.value_objects.slot_grid import SlotGrid, SlotGridConfig


class SlotGridGenerator:
    """Service for generating the canonical slot grid of a business day."""

    def __init__(self, config: Optional[SlotGridConfig] = None):
        self.config = config or SlotGridConfig()

    def generate_grid(self) -> SlotGrid:
        """Generate every valid slot start for a day.

        Minutes falling inside an exclusion window jump straight to the end of
        that window, so the grid has a real gap there.
        """
        config = self.config
        minutes = []
        current = config.start_minutes

        while current < config.end_minutes:
            window = next((w for w in config.exclusion_windows if w.contains(current)), None)
            if window:
                current = window.end_minutes
                continue

            minutes.append(current)
            current += config.granularity_minutes

        return SlotGrid(
            granularity_minutes=config.granularity_minutes,
            minutes=tuple(minutes),
            exclusion_windows=config.exclusion_windows
        )


def available_starts(grid: SlotGrid, occupied_labels: AbstractSet[str], units: int = 1) -> List[str]:
    """Grid labels from which `units` consecutive free slots can be booked.

    A start is accepted only when it is free and the following units - 1 grid
    positions exist, are adjacent without a break in between, and are free.
    """
    if units < 1:
        return []

    starts = []
    for index in range(len(grid)):
        if grid[index] in occupied_labels:
            continue

        if index + units > len(grid):
            break

        run_is_free = True
        for offset in range(1, units):
            position = index + offset
            if not grid.is_adjacent(position - 1) or grid[position] in occupied_labels:
                run_is_free = False
                break

        if run_is_free:
            starts.append(grid[index])

    return starts
