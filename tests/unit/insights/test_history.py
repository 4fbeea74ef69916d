"""Tests for ingestion into an EpisodeHistory: sorting, local time, label normalisation."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta, timezone

from insights.domain.models import Episode
from insights.services.history import EpisodeHistory


class TestEpisodeHistory:

    def test_records_are_sorted_chronologically(self, make_episode, now) -> None:
        episodes = [make_episode(days_ago=d) for d in (2, 9, 1, 5)]

        history = EpisodeHistory.build(episodes, now)

        moments = [r.moment for r in history.records]
        assert moments == sorted(moments)
        assert [e.id for e in episodes] == ["ep-1", "ep-2", "ep-3", "ep-4"]

    def test_moments_keep_their_authored_offset(self) -> None:
        plus_two = timezone(timedelta(hours=2))
        now = datetime(2026, 3, 18, 12, 0, tzinfo=plus_two)
        late_utc = Episode(id="x", datetime=datetime(2026, 3, 10, 23, 30, tzinfo=UTC))

        record = EpisodeHistory.build([late_utc], now).records[0]

        assert record.moment.hour == 23
        assert record.day.isoformat() == "2026-03-10"
        assert record.minute_of_day == 1410
        # 2026-03-10 is a Tuesday
        assert record.weekday == 2

    def test_mixed_offsets_sort_and_window_by_instant(self, now) -> None:
        plus_two = timezone(timedelta(hours=2))
        # 23:00 UTC on the 16th, written as 01:00 on the 17th
        early = Episode(id="early", datetime=datetime(2026, 3, 17, 1, 0, tzinfo=plus_two))
        late = Episode(id="late", datetime=datetime(2026, 3, 16, 23, 30, tzinfo=UTC))
        # 11:30 UTC, half an hour before the 30-day bound
        stale = Episode(id="stale", datetime=datetime(2026, 2, 16, 13, 30, tzinfo=plus_two))

        history = EpisodeHistory.build([late, stale, early], now)

        assert [r.episode_id for r in history.records] == ["stale", "early", "late"]
        assert [r.day.isoformat() for r in history.records][1:] == ["2026-03-17", "2026-03-16"]
        assert [r.episode_id for r in history.windowed_since(30)] == ["early", "late"]

    def test_labels_are_normalised_once(self, make_episode, now) -> None:
        episode = make_episode(triggers=["  Bright Light", "bright light", "", "Stress"])

        history = EpisodeHistory.build([episode], now)

        assert history.records[0].labels == ("bright light", "stress")
        assert history.display("bright light") == "Bright Light"
        assert history.display("stress") == "Stress"

    def test_display_capitalises_first_letter_only(self, make_episode, now) -> None:
        history = EpisodeHistory.build([make_episode(triggers=["red wine"])], now)

        assert history.display("red wine") == "Red wine"

    def test_window_includes_both_bounds(self, make_episode, now) -> None:
        episodes = [
            make_episode(days_ago=30),
            make_episode(days_ago=0),
            make_episode(days_ago=31),
        ]

        window = EpisodeHistory.build(episodes, now).windowed_since(30)

        assert sorted(r.episode_id for r in window) == ["ep-1", "ep-2"]

    def test_medication_flag(self, make_episode, now) -> None:
        episodes = [
            make_episode(days_ago=1, medications=[{"name": "rescue"}]),
            make_episode(days_ago=2),
        ]

        records = EpisodeHistory.build(episodes, now).records

        assert [r.has_medication for r in records] == [False, True]
