# -*- coding: utf-8 -*-
"""Diet — API endpoints."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Union

import httpx
from fastapi import APIRouter, HTTPException, Query

from ..config import settings
from ..errors import ConfigurationError, MalformedResponseError, ValidationError
from .models import (
    AnalysisType,
    CalorieEstimateResponse,
    DietCreateEntryRequest,
    DietCreateEntryResponse,
    DietEntriesResponse,
    DietSummaryResponse,
    FoodAnalysisRequest,
    FoodAnalysisResponse,
)
from .reference import refine_analysis
from .storage import create_entry_record, get_device_entries, get_device_summary, parse_timestamp, save_entry
from .vision import analyze_calories_only, analyze_food_image, decode_image

router = APIRouter(prefix="/api/diet", tags=["Diet"])


@router.post("/analyze", response_model=None, summary="Food photo analysis (no storage)")
def analyze(request: FoodAnalysisRequest) -> Union[FoodAnalysisResponse, CalorieEstimateResponse]:
    try:
        image_bytes = decode_image(request.image_base64, max_bytes=settings.max_image_bytes)
        if request.analysis_type == AnalysisType.calories:
            calories, model_name = analyze_calories_only(image_bytes=image_bytes, image_mime=request.image_mime)
            return CalorieEstimateResponse(calories=calories, model=model_name)
        result, model_name = analyze_food_image(image_bytes=image_bytes, image_mime=request.image_mime)
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except ConfigurationError as exc:
        raise HTTPException(status_code=500, detail=str(exc)) from exc
    except MalformedResponseError as exc:
        raise HTTPException(status_code=502, detail=f"Failed to analyze the image: {exc}") from exc
    except httpx.HTTPError as exc:
        raise HTTPException(status_code=502, detail=f"Vision model call failed: {exc}") from exc

    foods, totals = refine_analysis(result)
    return FoodAnalysisResponse(foods=foods, total_nutrition=totals, model=model_name)


@router.post("/entries/{device_id}", response_model=DietCreateEntryResponse, summary="Log a meal")
def create_entry(device_id: str, request: DietCreateEntryRequest):
    try:
        parse_timestamp(request.eaten_at)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=f"Invalid eatenAt timestamp: {request.eaten_at}") from exc

    entry = create_entry_record(
        device_id=device_id,
        eaten_at=request.eaten_at,
        meal_type=request.meal_type.value,
        foods=request.foods,
        notes=request.notes,
        source=request.source or "vision",
    )
    try:
        save_entry(entry)
    except OSError as exc:
        raise HTTPException(status_code=500, detail=f"Failed to save entry: {exc}") from exc

    return DietCreateEntryResponse(
        entry_id=entry.entry_id,
        saved_at=datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
        totals=entry.totals,
    )


@router.get("/entries/{device_id}", response_model=DietEntriesResponse, summary="List logged meals")
def list_entries(
    device_id: str,
    start: str | None = Query(default=None, description="YYYY-MM-DD"),
    end: str | None = Query(default=None, description="YYYY-MM-DD"),
    limit: int = Query(default=100, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
):
    entries = get_device_entries(device_id, start=start, end=end)
    sliced = entries[offset : offset + limit]
    return DietEntriesResponse(device_id=device_id, count=len(entries), entries=sliced)


@router.get("/summary/{device_id}", response_model=DietSummaryResponse, summary="Daily summary for a device")
def summary(
    device_id: str,
    start: str = Query(..., description="YYYY-MM-DD"),
    end: str = Query(..., description="YYYY-MM-DD"),
):
    data = get_device_summary(device_id, start=start, end=end)
    return DietSummaryResponse(
        device_id=device_id,
        start=data["start"],
        end=data["end"],
        totals=data["totals"],
        days=data["days"],
    )
