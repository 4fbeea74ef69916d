"""Shared fixtures: a fixed reference instant and an episode factory around it."""

from __future__ import annotations

import itertools
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from typing import Any

import pytest

from insights.domain.models import Episode

# Wednesday, 18 March 2026, noon UTC
REFERENCE_NOW = datetime(2026, 3, 18, 12, 0, tzinfo=UTC)

EpisodeFactory = Callable[..., Episode]


@pytest.fixture
def now() -> datetime:
    return REFERENCE_NOW


@pytest.fixture
def make_episode(now: datetime) -> EpisodeFactory:
    """Build an episode `days_ago` calendar days before `now`, at hour:minute local time."""
    ids = itertools.count(1)

    def _make(
        days_ago: int = 1,
        hour: int = 12,
        minute: int = 0,
        intensity: int = 5,
        triggers: tuple[str, ...] | list[str] = (),
        medications: list[dict[str, Any]] | None = None,
        **extra: Any,
    ) -> Episode:
        moment = (now - timedelta(days=days_ago)).replace(hour=hour, minute=minute)
        return Episode(
            id=f"ep-{next(ids)}",
            datetime=moment,
            intensity=intensity,
            duration_minutes=30,
            triggers=tuple(triggers),
            medications=tuple(medications or ()),
            **extra,
        )

    return _make
