from datetime import datetime, timedelta, timezone

import pytest
from wilderness_tracker.resolver import (
    ANCHOR,
    OccurrenceResolver,
    cyclic_index,
    elapsed_hours,
    resolve,
)
from wilderness_tracker.schemas import Occurrence, OccurrenceTemplate


def test_naive_datetime_rejected(catalog):
    naive = datetime(2024, 2, 5, 9, 30)
    with pytest.raises(ValueError, match="now must be timezone-aware"):
        resolve(naive, False, catalog)


class TestIndexing:
    def test_elapsed_hours_at_anchor(self):
        assert elapsed_hours(ANCHOR) == 0
        assert elapsed_hours(ANCHOR + timedelta(minutes=59, seconds=59)) == 0
        assert elapsed_hours(ANCHOR + timedelta(hours=1)) == 1

    def test_elapsed_hours_floors_before_anchor(self):
        assert elapsed_hours(ANCHOR - timedelta(seconds=1)) == -1

    def test_cyclic_index_wraps(self):
        assert cyclic_index(ANCHOR + timedelta(hours=8, minutes=10), 8) == 0
        assert cyclic_index(ANCHOR + timedelta(hours=19), 8) == 3
        assert cyclic_index(ANCHOR - timedelta(minutes=30), 8) == 7


class TestResolve:
    def test_positional_occurrence(self, catalog, now):
        occurrence = resolve(now, False, catalog)

        assert occurrence.id == 3
        assert occurrence.name == catalog[3].name
        assert occurrence.start_time == datetime(2024, 2, 5, 10, 0, tzinfo=timezone.utc)

    def test_special_only_scans_forward(self, catalog, now):
        occurrence = resolve(now, True, catalog)

        assert occurrence.id == 5
        assert "Special" in occurrence.tags
        assert occurrence.start_time == datetime(2024, 2, 5, 12, 0, tzinfo=timezone.utc)

    def test_special_only_current_entry_is_special(self, catalog_factory, now):
        catalog = catalog_factory(special_ids=(3, 5))
        occurrence = resolve(now, True, catalog)

        assert occurrence.id == 3
        assert occurrence.start_time == datetime(2024, 2, 5, 10, 0, tzinfo=timezone.utc)

    def test_special_only_falls_back_without_wrapping(self, catalog_factory, now):
        """A Special entry before the current index is never selected."""
        catalog = catalog_factory(special_ids=(1,))

        assert resolve(now, True, catalog) == resolve(now, False, catalog)
        assert resolve(now, True, catalog).id == 3

    def test_special_only_without_any_special(self, catalog_factory, now):
        catalog = catalog_factory(special_ids=())
        assert resolve(now, True, catalog).id == 3

    def test_returns_new_occurrence(self, catalog, now):
        occurrence = resolve(now, False, catalog)

        assert isinstance(occurrence, Occurrence)
        assert type(catalog[3]) is OccurrenceTemplate
        assert not hasattr(catalog[3], "start_time")

    def test_single_entry_catalog(self, catalog_factory, now):
        catalog = catalog_factory(special_ids=(), size=1)
        occurrence = resolve(now, True, catalog)

        assert occurrence.id == 0
        assert occurrence.start_time == datetime(2024, 2, 5, 10, 0, tzinfo=timezone.utc)

    def test_before_anchor(self, catalog):
        now = ANCHOR - timedelta(minutes=30)
        occurrence = resolve(now, False, catalog)

        assert occurrence.id == 7
        assert occurrence.start_time == ANCHOR

    def test_non_utc_input_is_normalized(self, catalog, now):
        tokyo = timezone(timedelta(hours=9))
        occurrence = resolve(now.astimezone(tokyo), False, catalog)

        assert occurrence == resolve(now, False, catalog)
        assert occurrence.start_time.tzinfo == timezone.utc


class TestHourRollover:
    def test_two_seconds_before_the_hour(self, catalog, now):
        moment = now.replace(minute=59, second=58)
        occurrence = resolve(moment, False, catalog)

        assert occurrence.id == 3
        assert occurrence.start_time == datetime(2024, 2, 5, 10, 0, tzinfo=timezone.utc)

    def test_last_second_of_the_hour_rolls_over(self, catalog, now):
        """The one-second nudge moves the final second to the next entry."""
        moment = now.replace(minute=59, second=59)
        occurrence = resolve(moment, False, catalog)

        assert occurrence.id == 4
        assert occurrence.start_time == datetime(2024, 2, 5, 11, 0, tzinfo=timezone.utc)

    def test_at_start_instant(self, catalog):
        moment = datetime(2024, 2, 5, 10, 0, tzinfo=timezone.utc)
        occurrence = resolve(moment, False, catalog)

        assert occurrence.id == 4
        assert occurrence.start_time == datetime(2024, 2, 5, 11, 0, tzinfo=timezone.utc)

    def test_sub_second_precision_is_dropped(self, catalog, now):
        moment = now.replace(minute=59, second=58, microsecond=900_000)
        occurrence = resolve(moment, False, catalog)

        assert occurrence.id == 3
        assert occurrence.start_time > moment


class TestProperties:
    @pytest.fixture
    def instants(self, now):
        """Every 37 seconds over five hours, with uneven microseconds."""
        return [
            now + timedelta(seconds=37 * step, microseconds=(step * 7919) % 1_000_000)
            for step in range(5 * 3600 // 37)
        ]

    @pytest.mark.parametrize("special_only", [False, True])
    def test_start_time_after_now(self, catalog, instants, special_only):
        for moment in instants:
            assert resolve(moment, special_only, catalog).start_time > moment

    @pytest.mark.parametrize("special_only", [False, True])
    def test_start_time_is_monotonic(self, catalog, instants, special_only):
        starts = [resolve(moment, special_only, catalog).start_time for moment in instants]
        assert starts == sorted(starts)

    def test_start_time_on_hour_boundary(self, catalog, instants):
        for moment in instants:
            start = resolve(moment, False, catalog).start_time
            assert (start.minute, start.second, start.microsecond) == (0, 0, 0)
            assert (start - ANCHOR) % timedelta(hours=1) == timedelta(0)

    def test_id_is_cyclic_index(self, catalog, instants):
        for moment in instants:
            t = moment.replace(microsecond=0) + timedelta(seconds=1)
            assert resolve(moment, False, catalog).id == elapsed_hours(t) % len(catalog)

    def test_special_selected_whenever_available_ahead(self, catalog, instants):
        for moment in instants:
            t = moment.replace(microsecond=0) + timedelta(seconds=1)
            idx = cyclic_index(t, len(catalog))
            occurrence = resolve(moment, True, catalog)
            if idx <= 5:
                assert occurrence.is_special
            else:
                assert occurrence == resolve(moment, False, catalog)

    @pytest.mark.parametrize("special_only", [False, True])
    def test_idempotent_within_a_second(self, catalog, now, special_only):
        first = resolve(now.replace(microsecond=1), special_only, catalog)
        second = resolve(now.replace(microsecond=999_999), special_only, catalog)
        assert first == second


class TestOccurrenceResolver:
    def test_bound_catalog(self, catalog, now):
        resolver = OccurrenceResolver(catalog)

        assert resolver.resolve(now) == resolve(now, False, catalog)
        assert resolver.resolve(now, special_only=True).id == 5

    def test_repr(self, catalog):
        assert repr(OccurrenceResolver(catalog)) == "OccurrenceResolver(catalog=Catalog(size=8))"
