"""
Backup and CSV codecs for the journaling app's export files.

File formats:
- Backup JSON: {"episodes": [...], "settings": {...}, "exportedAt": ISO-8601}
  with camelCase episode fields, as written by the app's "export backup" action.
- CSV: id,datetime,intensity,durationMinutes,triggers,medications,notes
  newest first; multi-valued cells joined with "|", medications as "name:dose".

Decoding user files is an expected failure, so loaders return a Result instead of raising.
"""

import csv
import io
import json
import re
from collections.abc import Iterable
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, Literal

import structlog
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from insights.domain.models import Episode, Medication, Settings
from insights.result import Result

logger = structlog.get_logger(__name__)

CSV_HEADER = ["id", "datetime", "intensity", "durationMinutes", "triggers", "medications", "notes"]
MULTI_VALUE_SEPARATOR = "|"

MergeMode = Literal["merge", "replace"]


class BackupFormatError(ValueError):
    """A backup or CSV file that cannot be decoded into episodes."""


class Backup(BaseModel):
    """Everything the app writes into a backup file."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    episodes: list[Episode] = Field(default_factory=list)
    settings: Settings = Field(default_factory=Settings)
    exported_at: datetime | None = None

    @field_validator("episodes", mode="before")
    def non_list_is_empty(cls, v: Any) -> Any:
        return v if isinstance(v, list) else []

    @field_validator("settings", mode="before")
    def missing_settings_are_defaults(cls, v: Any) -> Any:
        return v if isinstance(v, dict | Settings) else {}


def export_backup_json(
    episodes: Iterable[Episode],
    settings: Settings | None = None,
    exported_at: datetime | None = None,
) -> str:
    """Serialise episodes and settings into backup JSON text."""
    backup = Backup(
        episodes=list(episodes),
        settings=settings or Settings(),
        exported_at=exported_at or datetime.now(UTC),
    )
    return backup.model_dump_json(by_alias=True, indent=2)


def load_backup_json(text: str) -> Result[Backup, BackupFormatError]:
    """Parse backup JSON text; an empty document is an empty backup."""
    try:
        data = json.loads(text or "{}")
    except json.JSONDecodeError as e:
        return Result.err(BackupFormatError(f"Backup is not valid JSON: {e.msg} (line {e.lineno})"))

    if not isinstance(data, dict):
        return Result.err(BackupFormatError("Backup must be a JSON object"))

    try:
        backup = Backup.model_validate(data)
    except ValidationError as e:
        first = e.errors()[0]
        location = ".".join(str(part) for part in first["loc"])
        return Result.err(
            BackupFormatError(
                f"Backup has {e.error_count()} invalid field(s), first at {location}: {first['msg']}"
            )
        )

    logger.info("backup_loaded", episodes=len(backup.episodes))
    return Result.ok(backup)


def merge_episodes(
    current: Iterable[Episode], incoming: Iterable[Episode], mode: MergeMode = "merge"
) -> list[Episode]:
    """
    Combine an existing log with imported episodes.

    "replace" discards the current log. "merge" keys episodes by id: incoming
    episodes overwrite current ones in place, new ids are appended.
    """
    if mode == "replace":
        return list(incoming)

    merged = {episode.id: episode for episode in current}
    for episode in incoming:
        merged[episode.id] = episode
    return list(merged.values())


def _format_dose(dose_mg: float) -> str:
    return str(int(dose_mg)) if dose_mg.is_integer() else str(dose_mg)


def _format_medication(medication: Medication) -> str:
    if medication.dose_mg is None:
        return medication.name
    return f"{medication.name}:{_format_dose(medication.dose_mg)}"


def export_episodes_csv(episodes: Iterable[Episode]) -> str:
    """Render episodes as CSV text, newest first."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(CSV_HEADER)

    for episode in sorted(episodes, key=lambda e: e.occurred_at, reverse=True):
        writer.writerow(
            [
                episode.id,
                episode.occurred_at.isoformat(),
                episode.intensity,
                "" if episode.duration_minutes is None else episode.duration_minutes,
                MULTI_VALUE_SEPARATOR.join(episode.triggers),
                MULTI_VALUE_SEPARATOR.join(_format_medication(m) for m in episode.medications),
                re.sub(r"\r?\n", " ", episode.notes),
            ]
        )
    return buffer.getvalue()


def _parse_medication(cell: str) -> dict[str, Any]:
    name, separator, dose = cell.rpartition(":")
    if separator and name:
        try:
            return {"name": name, "doseMg": float(dose)}
        except ValueError:
            pass
    return {"name": cell}


def _split(cell: str | None) -> list[str]:
    return [part.strip() for part in (cell or "").split(MULTI_VALUE_SEPARATOR) if part.strip()]


def load_episodes_csv(text: str) -> Result[list[Episode], BackupFormatError]:
    """Parse CSV text written by export_episodes_csv."""
    reader = csv.DictReader(io.StringIO(text))
    missing = {"id", "datetime"} - set(reader.fieldnames or [])
    if missing:
        return Result.err(
            BackupFormatError(f"CSV is missing required column(s): {', '.join(sorted(missing))}")
        )

    episodes: list[Episode] = []
    for line, row in enumerate(reader, start=2):
        record = {
            "id": row.get("id"),
            "datetime": row.get("datetime"),
            "intensity": row.get("intensity") or None,
            "durationMinutes": row.get("durationMinutes") or None,
            "triggers": _split(row.get("triggers")),
            "medications": [_parse_medication(m) for m in _split(row.get("medications"))],
            "notes": row.get("notes") or "",
        }
        try:
            episodes.append(Episode.model_validate(record))
        except ValidationError as e:
            first = e.errors()[0]
            location = ".".join(str(part) for part in first["loc"])
            return Result.err(BackupFormatError(f"CSV line {line}: {location}: {first['msg']}"))

    logger.info("csv_loaded", episodes=len(episodes))
    return Result.ok(episodes)


def load_episode_file(path: Path) -> Result[list[Episode], BackupFormatError]:
    """Episodes from a .csv export or a backup JSON file, chosen by suffix."""
    text = path.read_text(encoding="utf-8")
    if path.suffix.lower() == ".csv":
        return load_episodes_csv(text)

    result = load_backup_json(text)
    if result.is_err():
        return Result.err(result.unwrap_err())
    return Result.ok(result.unwrap().episodes)
