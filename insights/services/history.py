"""
Normalised, chronologically sorted view of an episode log.

Episodes are normalised exactly once, at ingestion:
- timestamps keep the UTC offset they were written with, so calendar fields
  (day, hour, weekday) are the wall time the user saw; windows compare instants
- trigger labels trimmed, lowercased and de-duplicated per episode
- a side mapping keeps the first-seen spelling of each label for display

Rules only ever read an EpisodeHistory; nothing here is mutated after construction.
"""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from types import MappingProxyType

from insights.domain.models import Episode


@dataclass(frozen=True)
class EpisodeRecord:
    """Engine-side projection of one episode.

    `moment` is in the offset the episode was authored in. Comparisons between
    aware datetimes are by instant, so windowing and sorting ignore the offset.
    """

    episode_id: str
    moment: datetime
    intensity: int
    labels: tuple[str, ...]
    has_medication: bool

    @property
    def day(self) -> date:
        return self.moment.date()

    @property
    def minute_of_day(self) -> int:
        return self.moment.hour * 60 + self.moment.minute

    @property
    def weekday(self) -> int:
        """Sunday=0 .. Saturday=6."""
        return (self.moment.weekday() + 1) % 7


@dataclass(frozen=True)
class EpisodeHistory:
    """All records of one analysis run, oldest first, plus the reference instant."""

    now: datetime
    records: tuple[EpisodeRecord, ...]
    display_labels: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))

    @classmethod
    def build(cls, episodes: Iterable[Episode], now: datetime) -> "EpisodeHistory":
        now = now if now.tzinfo is not None else now.astimezone()

        # Stable sort by instant keeps arrival order for identical timestamps
        timeline = sorted(
            ((episode.occurred_at, episode) for episode in episodes),
            key=lambda pair: pair[0],
        )

        display: dict[str, str] = {}
        records = []
        for moment, episode in timeline:
            labels: list[str] = []
            for raw in episode.triggers:
                label = raw.strip()
                if not label:
                    continue
                key = label.lower()
                display.setdefault(key, label)
                if key not in labels:
                    labels.append(key)

            records.append(
                EpisodeRecord(
                    episode_id=episode.id,
                    moment=moment,
                    intensity=episode.intensity,
                    labels=tuple(labels),
                    has_medication=bool(episode.medications),
                )
            )

        return cls(now=now, records=tuple(records), display_labels=MappingProxyType(display))

    def windowed_since(self, days: int) -> list[EpisodeRecord]:
        """Records within [now - days, now]."""
        return self.between(self.now - timedelta(days=days), self.now, include_end=True)

    def between(
        self, start: datetime, end: datetime, include_end: bool = False
    ) -> list[EpisodeRecord]:
        """Records within [start, end), or [start, end] when include_end is set."""
        if include_end:
            return [r for r in self.records if start <= r.moment <= end]
        return [r for r in self.records if start <= r.moment < end]

    def display(self, label: str) -> str:
        """Capitalised display form of a normalised label."""
        text = self.display_labels.get(label, label)
        return text[:1].upper() + text[1:]
