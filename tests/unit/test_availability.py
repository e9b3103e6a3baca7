"""Unit tests for the availability calculation."""

from appointment_scheduling.application.services.availability_service import SlotGridGenerator, available_starts
from appointment_scheduling.domain.value_objects.slot_grid import ExclusionWindow, SlotGridConfig


def make_grid(start_hour=6, end_limit=20.5, lunch="12:30-14:00"):
    windows = (ExclusionWindow.parse(lunch),) if lunch else ()
    config = SlotGridConfig(start_hour=start_hour, end_limit=end_limit, exclusion_windows=windows)
    return SlotGridGenerator(config).generate_grid()


class TestAvailableStarts:
    """Test cases for available_starts."""

    def test_empty_day_single_slot(self):
        """Test every grid label is free on an empty day."""
        grid = make_grid()

        assert available_starts(grid, set(), 1) == grid.labels

    def test_empty_day_double_slot_skips_gap_and_end(self):
        """Test two-slot starts exclude the last slot before lunch and of the day."""
        grid = make_grid()

        starts = available_starts(grid, set(), 2)

        assert "12:00" not in starts
        assert "20:00" not in starts
        assert "11:30" in starts
        assert "14:00" in starts
        assert "19:30" in starts
        assert len(starts) == len(grid) - 2

    def test_multi_slot_appointment_blocks_both_labels(self):
        """Test a 60-minute booking at 09:00 hides 09:00 and 09:30."""
        grid = make_grid()
        occupied = {"09:00", "09:30"}

        single = available_starts(grid, occupied, 1)
        double = available_starts(grid, occupied, 2)

        assert "09:00" not in single
        assert "09:30" not in single
        assert "08:30" in single
        assert "10:00" in single
        assert "08:30" not in double
        assert "10:00" in double

    def test_result_follows_grid_order(self):
        """Test starts are returned in grid order."""
        grid = make_grid()

        starts = available_starts(grid, {"07:00", "15:00"}, 2)

        assert starts == sorted(starts)

    def test_runs_never_cross_gap_or_upper_boundary(self):
        """Test every accepted run stays contiguous and inside the grid."""
        grid = make_grid()
        occupied = {"06:30", "10:00", "14:30", "19:00"}

        for units in (1, 2, 3, 4):
            for start in available_starts(grid, occupied, units):
                index = grid.index_of(start)
                assert index + units <= len(grid)
                for position in range(index, index + units - 1):
                    assert grid.is_adjacent(position)
                run = grid.labels[index:index + units]
                assert occupied.isdisjoint(run)

    def test_idempotent(self):
        """Test repeated calls with the same occupied set agree."""
        grid = make_grid()
        occupied = {"09:00", "09:30", "16:00"}

        assert available_starts(grid, occupied, 2) == available_starts(grid, occupied, 2)

    def test_three_slot_runs(self):
        """Test the calculation generalises beyond two slots."""
        grid = make_grid(start_hour=9, end_limit=11, lunch=None)

        assert grid.labels == ["09:00", "09:30", "10:00", "10:30"]
        assert available_starts(grid, set(), 3) == ["09:00", "09:30"]
        assert available_starts(grid, {"10:00"}, 3) == []

    def test_non_positive_units(self):
        """Test zero-slot requests have no valid starts."""
        assert available_starts(make_grid(), set(), 0) == []

    def test_fully_booked_day(self):
        """Test a day with every slot taken has no starts."""
        grid = make_grid()

        assert available_starts(grid, set(grid.labels), 1) == []
