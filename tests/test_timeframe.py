"""Tests for timeframes and bucket arithmetic."""

from datetime import datetime, timedelta, timezone

import pytest

from ohlcv.models.timeframe import EPOCH, Bound, Timeframe


def utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


SAMPLE_TIMES = [
    utc(2025, 1, 1, 13, 27, 0),
    utc(2025, 1, 1, 0, 0, 0),
    utc(2024, 2, 29, 23, 59, 59, 999999),
    utc(1970, 1, 1, 0, 0, 1),
    utc(1969, 12, 31, 23, 58, 30),
    utc(1960, 6, 15, 7, 3, 11),
]


class TestTimeframe:
    """Tests for Timeframe values, parsing and ordering."""

    def test_labels_and_durations(self):
        assert [tf.value for tf in Timeframe] == ["5m", "15m", "1h", "4h", "1d"]
        assert Timeframe.FIVE_MINUTES.duration == timedelta(minutes=5)
        assert Timeframe.QUARTERS.duration == timedelta(minutes=15)
        assert Timeframe.ONE_HOUR.duration == timedelta(hours=1)
        assert Timeframe.FOUR_HOURS.duration == timedelta(hours=4)
        assert Timeframe.ONE_DAY.duration == timedelta(days=1)

    def test_parse_from_label_and_duration(self):
        assert Timeframe("15m") is Timeframe.QUARTERS
        assert Timeframe(timedelta(hours=4)) is Timeframe.FOUR_HOURS
        assert str(Timeframe.ONE_DAY) == "1d"

    def test_parse_invalid(self):
        with pytest.raises(ValueError):
            Timeframe("2h")
        with pytest.raises(ValueError):
            Timeframe(timedelta(minutes=7))

    def test_ordering_by_duration(self):
        """Test that timeframes sort by duration, not by label."""
        shuffled = [Timeframe.ONE_DAY, Timeframe.QUARTERS, Timeframe.FOUR_HOURS,
                    Timeframe.FIVE_MINUTES, Timeframe.ONE_HOUR]
        assert sorted(shuffled) == list(Timeframe)
        assert Timeframe.QUARTERS > Timeframe.FIVE_MINUTES
        assert Timeframe.ONE_HOUR <= Timeframe.ONE_HOUR
        assert Timeframe.default() is Timeframe.FIVE_MINUTES


class TestRounding:
    """Tests for round_down and round_up."""

    def test_one_hour_example(self):
        t = utc(2025, 1, 1, 13, 27, 0)
        assert Timeframe.ONE_HOUR.round_down(t) == utc(2025, 1, 1, 13, 0, 0)
        assert Timeframe.ONE_HOUR.round_up(t) == utc(2025, 1, 1, 14, 0, 0)

    @pytest.mark.parametrize("tf", list(Timeframe))
    @pytest.mark.parametrize("t", SAMPLE_TIMES)
    def test_bounds_alignment_and_idempotence(self, tf, t):
        """Test round_down <= t <= round_up on epoch-aligned boundaries."""
        down = tf.round_down(t)
        up = tf.round_up(t)

        assert down <= t <= up
        assert (down - EPOCH) % tf.duration == timedelta(0)
        assert (up - EPOCH) % tf.duration == timedelta(0)
        assert tf.round_down(down) == down
        assert up - down in (timedelta(0), tf.duration)

    @pytest.mark.parametrize("tf", list(Timeframe))
    def test_round_up_of_boundary_is_identity(self, tf):
        boundary = tf.round_down(utc(2025, 3, 10, 17, 44, 12))
        assert tf.round_up(boundary) == boundary

    def test_before_epoch(self):
        t = utc(1969, 12, 31, 23, 58, 30)
        assert Timeframe.FIVE_MINUTES.round_down(t) == utc(1969, 12, 31, 23, 55, 0)
        assert Timeframe.FIVE_MINUTES.round_up(t) == EPOCH
        assert Timeframe.ONE_DAY.round_down(t) == utc(1969, 12, 31)

    def test_sub_second_time_on_boundary_rounds_up(self):
        t = utc(2025, 1, 1, 13, 0, 0, 500000)
        assert Timeframe.ONE_HOUR.round_down(t) == utc(2025, 1, 1, 13)
        assert Timeframe.ONE_HOUR.round_up(t) == utc(2025, 1, 1, 14)

    def test_naive_times_are_utc(self):
        assert Timeframe.QUARTERS.round_down(datetime(2025, 1, 1, 13, 20)) == utc(2025, 1, 1, 13, 15)

    def test_other_time_zones_are_converted(self):
        cest = timezone(timedelta(hours=2))
        t = datetime(2025, 6, 1, 3, 30, tzinfo=cest)
        assert Timeframe.FOUR_HOURS.round_down(t) == utc(2025, 6, 1, 0)
        assert Timeframe.ONE_DAY.round_down(t) == utc(2025, 6, 1)

    def test_round_up_past_last_bucket(self):
        """Test that a time after the last representable bucket start is rejected."""
        latest = datetime.max.replace(tzinfo=timezone.utc)

        with pytest.raises(ValueError) as exc_info:
            Timeframe.ONE_DAY.round_up(latest)

        assert "1d" in str(exc_info.value)
        assert Timeframe.ONE_DAY.round_down(latest) == utc(9999, 12, 31)


class TestRange:
    """Tests for resolving bounds into bucket-aligned ranges."""

    START = utc(2025, 1, 1, 13, 27)
    END = utc(2025, 1, 1, 17, 5)

    def test_included_start_and_end_widen(self):
        start, end = Timeframe.ONE_HOUR.range(Bound.included(self.START), Bound.included(self.END))
        assert start == utc(2025, 1, 1, 13)
        assert end == utc(2025, 1, 1, 18)

    def test_excluded_start_and_end_narrow(self):
        start, end = Timeframe.ONE_HOUR.range(Bound.excluded(self.START), Bound.excluded(self.END))
        assert start == utc(2025, 1, 1, 14)
        assert end == utc(2025, 1, 1, 17)

    def test_aligned_bounds_are_kept(self):
        start, end = Timeframe.ONE_HOUR.range(
            Bound.excluded(utc(2025, 1, 1, 13)), Bound.included(utc(2025, 1, 1, 17))
        )
        assert (start, end) == (utc(2025, 1, 1, 13), utc(2025, 1, 1, 17))

    def test_unbounded(self):
        now = utc(2025, 1, 2, 9, 41)
        start, end = Timeframe.FOUR_HOURS.range(Bound.unbounded(), Bound.unbounded(), now=now)
        assert start == EPOCH
        assert end == utc(2025, 1, 2, 8)

    def test_unbounded_end_defaults_to_current_time(self):
        _, end = Timeframe.FIVE_MINUTES.range(None, None)
        now = datetime.now(timezone.utc)
        assert end <= now
        assert now - end < timedelta(minutes=5, seconds=5)

    def test_plain_datetimes_are_half_open(self):
        """Test plain datetimes as an included start and an excluded end."""
        start, end = Timeframe.ONE_HOUR.range(self.START, self.END)
        assert start == utc(2025, 1, 1, 13)
        assert end == utc(2025, 1, 1, 17)

    def test_included_end_past_last_bucket(self):
        with pytest.raises(ValueError):
            Timeframe.FOUR_HOURS.range(self.START, Bound.included(utc(9999, 12, 31, 21, 30)))

    def test_bound_needs_time(self):
        with pytest.raises(ValueError):
            Bound(Bound.INCLUDED)
        with pytest.raises(ValueError):
            Bound("open", utc(2025, 1, 1))
