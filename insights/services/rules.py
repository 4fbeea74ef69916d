"""
Pattern rules over an episode history.

Each rule is an independent heuristic: it reads the whole EpisodeHistory, computes
its own window, and returns at most one Finding. Aggregation state (counters,
buckets) lives in locals of a single rule call, never shared between rules.

Messages are gentle observations and suggestions, never medical claims.
"""

import math
from collections import Counter, defaultdict
from collections.abc import Callable
from datetime import timedelta
from statistics import fmean
from typing import Protocol

from insights.config import EngineConfig
from insights.domain.models import WEEKDAY_NAMES, Finding
from insights.services.history import EpisodeHistory, EpisodeRecord

MINUTES_PER_DAY = 24 * 60


class PatternRule(Protocol):
    """A heuristic that emits zero or one finding for a history."""

    def __call__(self, history: EpisodeHistory, config: EngineConfig) -> Finding | None: ...


def _percent(part: int, total: int) -> int:
    """Percentage rounded half up."""
    return math.floor(part * 100 / total + 0.5)


def _clock(minutes: int) -> str:
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def _mean_buckets(
    records: list[EpisodeRecord], key: Callable[[EpisodeRecord], int]
) -> tuple[int, float, int] | None:
    """Bucket with the highest mean intensity as (bucket, mean, count).

    Buckets are compared in ascending key order with strict greater-than,
    so ties go to the lowest key.
    """
    sums: dict[int, int] = defaultdict(int)
    counts: dict[int, int] = defaultdict(int)
    for record in records:
        bucket = key(record)
        sums[bucket] += record.intensity
        counts[bucket] += 1

    best: tuple[int, float, int] | None = None
    for bucket in sorted(counts):
        mean = sums[bucket] / counts[bucket]
        if best is None or mean > best[1]:
            best = (bucket, mean, counts[bucket])
    return best


def frequent_triggers(history: EpisodeHistory, config: EngineConfig) -> Finding | None:
    """Labels present in at least a quarter of recent episodes."""
    recent = history.windowed_since(config.recent_window_days)
    if not recent:
        return None

    counts: Counter[str] = Counter()
    for record in recent:
        counts.update(record.labels)

    threshold = math.ceil(len(recent) * config.trigger_share)
    frequent = [label for label, count in counts.items() if count >= threshold]
    if not frequent:
        return None

    listed = ", ".join(history.display(label) for label in frequent)
    return Finding(
        title="Frequent triggers",
        message=(
            f"You often report triggers like {listed}. It might help to reflect on "
            "what adjustments could make these easier to avoid or manage."
        ),
    )


def time_of_day_cluster(history: EpisodeHistory, config: EngineConfig) -> Finding | None:
    """A span of cluster_span_minutes holding a large share of recent episodes."""
    recent = history.windowed_since(config.recent_window_days)
    if not recent:
        return None

    minutes = sorted(record.minute_of_day for record in recent)
    span = config.cluster_span_minutes

    left = 0
    max_count = 0
    window_start = 0
    for right, value in enumerate(minutes):
        while value - minutes[left] > span:
            left += 1
        count = right - left + 1
        if count > max_count:
            max_count = count
            window_start = minutes[left]

    total = len(minutes)
    if max_count < math.ceil(total * config.cluster_share):
        return None

    start = _clock(window_start)
    end = _clock((window_start + span) % MINUTES_PER_DAY)
    return Finding(
        title="Time-of-day pattern",
        message=(
            f"Around {_percent(max_count, total)}% of your episodes happen between "
            f"{start} and {end}. You might try adjusting your routine or preparing "
            "for triggers during this period."
        ),
    )


def day_of_week_cluster(history: EpisodeHistory, config: EngineConfig) -> Finding | None:
    """One weekday holding a large share of recent episodes."""
    recent = history.windowed_since(config.recent_window_days)
    if not recent:
        return None

    counts = [0] * 7
    for record in recent:
        counts[record.weekday] += 1

    best = 0
    for weekday in range(1, 7):
        if counts[weekday] > counts[best]:
            best = weekday

    total = len(recent)
    if counts[best] < math.ceil(total * config.cluster_share):
        return None

    return Finding(
        title="Day-of-week trend",
        message=(
            f"About {_percent(counts[best], total)}% of recent episodes occur on "
            f"{WEEKDAY_NAMES[best]}s. There may be something about those days worth "
            "looking into."
        ),
    )


def _rising_finding(older: float, newer: float) -> Finding:
    return Finding(
        title="Rising intensity",
        message=(
            f"Your average intensity over the last three weeks ({newer:.1f}) is noticeably "
            f"higher than over the preceding three weeks ({older:.1f}). It may be worth "
            "discussing this with a healthcare professional."
        ),
    )


def _midpoint_trend(history: EpisodeHistory, config: EngineConfig) -> Finding | None:
    split = history.now - timedelta(days=config.trend_split_days)
    start = history.now - timedelta(days=config.trend_window_days)
    older = history.between(start, split)
    newer = history.windowed_since(config.trend_split_days)
    if not older or not newer:
        return None

    older_mean = fmean(record.intensity for record in older)
    newer_mean = fmean(record.intensity for record in newer)
    if newer_mean > 0 and newer_mean >= older_mean * config.rising_ratio:
        return _rising_finding(older_mean, newer_mean)
    return None


def _weekly_trend(history: EpisodeHistory, config: EngineConfig) -> Finding | None:
    recent = history.windowed_since(config.trend_window_days)
    if len(recent) < config.weekly_min_episodes:
        return None

    weeks: dict[tuple[int, int], list[int]] = defaultdict(list)
    for record in recent:
        iso = record.moment.isocalendar()
        weeks[(iso.year, iso.week)].append(record.intensity)
    if len(weeks) < config.weekly_min_buckets:
        return None

    weekly_means = [fmean(weeks[week]) for week in sorted(weeks)]
    half = config.weekly_min_buckets // 2
    last = fmean(weekly_means[-half:])
    previous = fmean(weekly_means[-2 * half : -half])
    if previous > 0 and last >= previous * config.rising_ratio:
        return _rising_finding(previous, last)
    return None


def rising_intensity(history: EpisodeHistory, config: EngineConfig) -> Finding | None:
    """Recent intensity at least rising_ratio times the earlier intensity."""
    if config.trend_strategy == "weekly":
        return _weekly_trend(history, config)
    return _midpoint_trend(history, config)


def medication_overuse(history: EpisodeHistory, config: EngineConfig) -> Finding | None:
    """Medication taken on many distinct days of the recent window."""
    recent = history.windowed_since(config.recent_window_days)
    days = {record.day for record in recent if record.has_medication}
    if len(days) < config.medication_day_threshold:
        return None

    return Finding(
        title="Medication use",
        message=(
            f"You've taken medication on {len(days)} days in the last month. Frequent use "
            "can sometimes lead to medication-overuse headaches, so it may help to talk "
            "your plan through with a doctor."
        ),
    )


def peak_intensity_hour(history: EpisodeHistory, config: EngineConfig) -> Finding | None:
    """Hour of day whose episodes are the most intense on average."""
    recent = history.windowed_since(config.recent_window_days)
    if not recent:
        return None

    peak = _mean_buckets(recent, lambda record: record.moment.hour)
    if peak is None:
        return None
    hour, mean, count = peak
    if mean < config.peak_min_mean or count < config.peak_min_samples:
        return None

    return Finding(
        title="Peak intensity hour",
        message=(
            f"Episodes logged around {hour:02d}:00 tend to be more intense. Planning rest "
            "or small adjustments around then might help."
        ),
    )


def toughest_weekday(history: EpisodeHistory, config: EngineConfig) -> Finding | None:
    """Weekday whose episodes are the most intense on average."""
    recent = history.windowed_since(config.recent_window_days)
    if not recent:
        return None

    toughest = _mean_buckets(recent, lambda record: record.weekday)
    if toughest is None:
        return None
    weekday, mean, count = toughest
    if mean < config.peak_min_mean or count < config.peak_min_samples:
        return None

    return Finding(
        title="Toughest day",
        message=(
            f"Your episodes tend to be most intense on {WEEKDAY_NAMES[weekday]}s. "
            "Consider easing your schedule on those days."
        ),
    )


def tracking_streak(history: EpisodeHistory, config: EngineConfig) -> Finding | None:
    """Consecutive logged days counted back from the most recent logged day."""
    days = sorted({record.day for record in history.records}, reverse=True)
    if not days:
        return None

    streak = 1
    for later, earlier in zip(days, days[1:]):
        if (later - earlier).days != 1:
            break
        streak += 1

    if streak < config.streak_min_days:
        return None

    return Finding(
        title="Consistent tracking",
        message=(
            f"Great job! You've logged episodes on {streak} consecutive days. Keeping "
            "track consistently helps patterns show up."
        ),
    )


def weekly_frequency_change(history: EpisodeHistory, config: EngineConfig) -> Finding | None:
    """Episode count of the last week against the week before it."""
    week = timedelta(days=config.week_days)
    last_count = len(history.windowed_since(config.week_days))
    previous_count = len(history.between(history.now - 2 * week, history.now - week))
    if previous_count == 0 or last_count == previous_count:
        return None

    if last_count > previous_count:
        return Finding(
            title="Increased frequency",
            message=(
                f"You logged {last_count} episodes in the last week, up from "
                f"{previous_count} the week before. Keep an eye out for triggers and "
                "consider what might have changed."
            ),
        )
    return Finding(
        title="Decreased frequency",
        message=(
            f"Nice progress! You logged fewer episodes this week ({last_count}) than "
            f"the week before ({previous_count}). Keep it up!"
        ),
    )


CORE_RULES: tuple[tuple[str, PatternRule], ...] = (
    ("frequent_triggers", frequent_triggers),
    ("time_of_day_cluster", time_of_day_cluster),
    ("day_of_week_cluster", day_of_week_cluster),
    ("rising_intensity", rising_intensity),
    ("medication_overuse", medication_overuse),
)

EXTENDED_RULES: tuple[tuple[str, PatternRule], ...] = (
    ("peak_intensity_hour", peak_intensity_hour),
    ("toughest_weekday", toughest_weekday),
    ("tracking_streak", tracking_streak),
    ("weekly_frequency_change", weekly_frequency_change),
)
