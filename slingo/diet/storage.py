# -*- coding: utf-8 -*-
"""Diet — append-only meal log in JSON files (no image retention)."""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional
from uuid import uuid4
from zoneinfo import ZoneInfo

from pydantic import ValidationError as PydanticValidationError

from ..config import settings
from .models import AnalyzedFood, DietDailySummary, DietEntry, NutritionTotals
from .reference import sum_nutrition

logger = logging.getLogger(__name__)


def _diet_root_for(device_id: str, data_root: Path | None = None) -> Path:
    return (data_root or settings.data_root) / "devices" / device_id / "diet"


def _ensure_dir(path: Path) -> None:
    path.mkdir(parents=True, exist_ok=True)


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def save_entry(entry: DietEntry, data_root: Path | None = None) -> str:
    device_dir = _diet_root_for(entry.device_id, data_root)
    _ensure_dir(device_dir)
    fp = device_dir / f"{entry.entry_id}.json"
    fp.write_text(entry.model_dump_json(by_alias=True, indent=2), encoding="utf-8")
    return entry.entry_id


def create_entry_record(
    *,
    device_id: str,
    eaten_at: str,
    meal_type: str,
    foods: List[AnalyzedFood],
    notes: Optional[str],
    source: str,
) -> DietEntry:
    return DietEntry(
        entry_id=str(uuid4()),
        device_id=device_id,
        created_at=_utc_now_iso(),
        eaten_at=eaten_at,
        meal_type=meal_type,
        foods=foods,
        totals=sum_nutrition(foods),
        notes=notes,
        source=source,
    )


def _iter_device_entries(device_dir: Path) -> List[DietEntry]:
    if not device_dir.exists():
        return []

    entries: List[DietEntry] = []
    for fp in sorted(device_dir.glob("*.json")):
        try:
            raw = json.loads(fp.read_text(encoding="utf-8"))
            entries.append(DietEntry.model_validate(raw))
        except (OSError, ValueError, PydanticValidationError) as exc:
            logger.warning("skipping unreadable diet entry %s: %s", fp.name, exc)
            continue
    entries.sort(key=lambda e: e.eaten_at, reverse=True)
    return entries


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO8601 timestamp; a trailing ``Z`` is accepted as UTC."""
    text = (value or "").strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    return datetime.fromisoformat(text)


def local_day(eaten_at: str) -> str:
    """Calendar day (YYYY-MM-DD) of ``eaten_at`` in the service timezone.

    Naive timestamps are taken to already be in that zone.
    """
    try:
        when = parse_timestamp(eaten_at)
    except ValueError:
        # Entries written before timestamps were validated.
        return (eaten_at or "")[:10]
    if when.tzinfo is None:
        return when.date().isoformat()
    return when.astimezone(ZoneInfo(settings.timezone)).date().isoformat()


def get_device_entries(
    device_id: str,
    *,
    start: Optional[str] = None,
    end: Optional[str] = None,
    data_root: Path | None = None,
) -> List[DietEntry]:
    entries = _iter_device_entries(_diet_root_for(device_id, data_root))
    if not start and not end:
        return entries

    start_date = start or "0000-01-01"
    end_date = end or "9999-12-31"
    return [e for e in entries if start_date <= local_day(e.eaten_at) <= end_date]


def get_device_summary(
    device_id: str,
    *,
    start: str,
    end: str,
    data_root: Path | None = None,
) -> Dict[str, Any]:
    entries = get_device_entries(device_id, start=start, end=end, data_root=data_root)

    per_day: Dict[str, List[DietEntry]] = {}
    for entry in entries:
        per_day.setdefault(local_day(entry.eaten_at), []).append(entry)

    days: List[DietDailySummary] = []
    for day in sorted(per_day.keys()):
        day_entries = per_day[day]
        days.append(
            DietDailySummary(
                date=day,
                totals=_sum_entry_totals(day_entries),
                entry_count=len(day_entries),
            )
        )

    return {
        "device_id": device_id,
        "start": start,
        "end": end,
        "totals": _sum_entry_totals(entries),
        "days": days,
    }


def _sum_entry_totals(entries: List[DietEntry]) -> NutritionTotals:
    totals = NutritionTotals()
    for entry in entries:
        totals.calories += entry.totals.calories
        totals.protein += entry.totals.protein
        totals.carbs += entry.totals.carbs
        totals.fat += entry.totals.fat
    return NutritionTotals(
        calories=round(totals.calories, 1),
        protein=round(totals.protein, 1),
        carbs=round(totals.carbs, 1),
        fat=round(totals.fat, 1),
    )


def get_daily_calories(device_id: str, day: str, data_root: Path | None = None) -> float:
    """Total calories logged on ``day`` (YYYY-MM-DD)."""
    entries = get_device_entries(device_id, start=day, end=day, data_root=data_root)
    return _sum_entry_totals(entries).calories
