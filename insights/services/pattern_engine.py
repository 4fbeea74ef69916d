"""
Pattern engine: runs the fixed rule battery over an episode log.

Key architectural decisions:
- Stateless: every call rebuilds its EpisodeHistory from scratch, nothing persists
- Explicit reference time: "now" is a parameter, rules never read a clock
- Graceful degradation: a record that fails validation or a rule that breaks is
  logged and skipped, the rest of the battery still runs
- Stable output: findings follow rule order, rules see a chronologically sorted history
"""

import time
from collections.abc import Iterable, Mapping
from datetime import datetime
from typing import Any

import structlog
from pydantic import ValidationError

from insights.config import EngineConfig, get_config
from insights.domain.models import Episode, Finding
from insights.services.history import EpisodeHistory
from insights.services.rules import CORE_RULES, EXTENDED_RULES, PatternRule

logger = structlog.get_logger(__name__)

EpisodeInput = Episode | Mapping[str, Any]


class PatternEngine:
    """
    Surfaces statistical patterns from an episode history.

    Design principles:
    - Each rule is independent and contributes zero or one finding
    - The input collection is only read, never mutated or reordered
    - Thresholds come from EngineConfig, not from the rules
    """

    def __init__(self, config: EngineConfig | None = None) -> None:
        self.config = config or EngineConfig()
        self.logger = logger.bind(component="pattern_engine")

    @property
    def rules(self) -> tuple[tuple[str, PatternRule], ...]:
        if self.config.include_extended_rules:
            return CORE_RULES + EXTENDED_RULES
        return CORE_RULES

    def analyse(
        self, episodes: Iterable[EpisodeInput] | None, now: datetime | None = None
    ) -> list[Finding]:
        """Run every rule in order and collect the findings that fire."""
        if not episodes:
            return []

        start_time = time.perf_counter()
        now = now or datetime.now().astimezone()
        history = EpisodeHistory.build(self._ingest(episodes), now)
        if not history.records:
            return []

        findings: list[Finding] = []
        for name, rule in self.rules:
            try:
                finding = rule(history, self.config)
            except Exception as e:
                # Log error but keep the remaining rules running
                self.logger.exception("rule_failed", rule=name, error=str(e))
                continue

            if finding is None:
                self.logger.debug("rule_skipped", rule=name)
            else:
                self.logger.debug("rule_fired", rule=name, title=finding.title)
                findings.append(finding)

        self.logger.info(
            "analysis_completed",
            episodes=len(history.records),
            findings=len(findings),
            duration_seconds=round(time.perf_counter() - start_time, 4),
        )
        return findings

    def _ingest(self, episodes: Iterable[EpisodeInput]) -> list[Episode]:
        """Validate plain mappings into Episodes, skipping records that cannot be read."""
        accepted: list[Episode] = []
        for position, item in enumerate(episodes):
            if isinstance(item, Episode):
                accepted.append(item)
                continue
            if not isinstance(item, Mapping):
                self.logger.warning(
                    "episode_skipped", position=position, reason=type(item).__name__
                )
                continue
            try:
                accepted.append(Episode.model_validate(dict(item)))
            except ValidationError as e:
                self.logger.warning(
                    "episode_skipped",
                    position=position,
                    episode_id=item.get("id"),
                    errors=e.error_count(),
                )
        return accepted


def analyse(
    episodes: Iterable[EpisodeInput] | None,
    now: datetime | None = None,
    config: EngineConfig | None = None,
) -> list[Finding]:
    """Findings for an episode log at a reference instant (defaults to the current time).

    Without an explicit config the environment is used; a malformed environment
    falls back to the default thresholds rather than failing the analysis.
    """
    if config is None:
        try:
            config = get_config().engine
        except ValueError as e:
            logger.warning("config_invalid_using_defaults", error=str(e))
            config = EngineConfig()
    return PatternEngine(config).analyse(episodes, now)
