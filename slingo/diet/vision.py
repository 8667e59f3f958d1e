# -*- coding: utf-8 -*-
"""Diet — vision model call via an OpenAI-compatible chat completions API."""

from __future__ import annotations

import base64
import binascii
import json
import logging
import math
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

import httpx

from ..config import settings
from ..errors import ConfigurationError, MalformedResponseError, ValidationError
from .models import FoodAnalysisResult, FoodItem, NutritionTotals

logger = logging.getLogger(__name__)

FULL_ANALYSIS_PROMPT = """Analyze this photo of food and return JSON with the following information:

{
  "foods": [
    {
      "name": "Food name",
      "estimatedPortion": "Estimated portion (e.g. 1 plate, 2 tablespoons, 100g)",
      "calories": estimated_calories,
      "protein": grams_of_protein,
      "carbs": grams_of_carbohydrates,
      "fat": grams_of_fat,
      "confidence": confidence_from_0_to_1
    }
  ]
}

Important:
1. Identify ALL foods visible in the photo.
2. Estimate the portion of each food from its visual size.
3. Base nutrition values on standard food composition tables.
4. List multiple foods separately.
5. "confidence" is how certain you are of the identification (0.0 to 1.0).
6. Use common household portions (tablespoon, cup, plate, unit).
7. Be precise and conservative with calorie estimates.

Return ONLY the JSON, no additional text."""

CALORIES_ONLY_PROMPT = (
    "Analyze this photo of food and return ONLY a number: the estimated total calories. "
    "Be precise and conservative. Return just the number, no additional text."
)

CALORIES_ONLY_MAX_TOKENS = 10


@dataclass(frozen=True)
class VisionSettings:
    base_url: str
    api_key: str
    model: str
    timeout: float
    max_tokens: int
    temperature: float


def resolve_vision_settings() -> VisionSettings:
    api_key = (settings.openai_api_key or "").strip()
    if not api_key or "***" in api_key:
        raise ConfigurationError("OpenAI API key is not configured; set OPENAI_API_KEY")
    return VisionSettings(
        base_url=settings.openai_base_url.rstrip("/"),
        api_key=api_key,
        model=settings.vision_model,
        timeout=settings.vision_timeout,
        max_tokens=settings.vision_max_tokens,
        temperature=settings.vision_temperature,
    )


def decode_image(image_base64: Optional[str], max_bytes: int) -> bytes:
    if not image_base64 or not image_base64.strip():
        raise ValidationError("No image provided")
    payload = image_base64.strip()
    # Accept "data:image/jpeg;base64,...." as sent by browsers.
    if payload.startswith("data:") and "," in payload:
        payload = payload.split(",", 1)[1]
    try:
        data = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ValidationError(f"Invalid base64 image: {exc}") from exc
    if not data:
        raise ValidationError("No image provided")
    if len(data) > max_bytes:
        raise ValidationError(f"Image too large: {len(data)} bytes > {max_bytes}")
    return data


# ----------------------------------------------------------------------
# Response cleanup and parsing
# ----------------------------------------------------------------------


def strip_code_fences(text: str) -> str:
    cleaned = (text or "").strip()
    cleaned = re.sub(r"^```(?:json)?\s*", "", cleaned, flags=re.IGNORECASE)
    cleaned = re.sub(r"\s*```$", "", cleaned)
    return cleaned.strip()


def _remove_trailing_commas(text: str) -> str:
    """Remove trailing commas in JSON while preserving string literals."""
    out: list[str] = []
    in_str = False
    escaped = False
    i = 0
    while i < len(text):
        ch = text[i]
        if in_str:
            out.append(ch)
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == "\"":
                in_str = False
            i += 1
            continue

        if ch == "\"":
            in_str = True
            out.append(ch)
            i += 1
            continue

        if ch == ",":
            j = i + 1
            while j < len(text) and text[j] in " \t\r\n":
                j += 1
            if j < len(text) and text[j] in "}]":
                i += 1
                continue

        out.append(ch)
        i += 1
    return "".join(out)


def _iter_json_object_candidates(text: str) -> list[str]:
    """Extract balanced {...} candidates, for answers with prose around the JSON."""
    candidates: list[str] = []
    in_str = False
    escaped = False
    depth = 0
    start_idx: int | None = None

    for i, ch in enumerate(text):
        if in_str:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == "\"":
                in_str = False
            continue

        if ch == "\"":
            in_str = True
            continue

        if ch == "{":
            if depth == 0:
                start_idx = i
            depth += 1
            continue

        if ch == "}":
            if depth > 0:
                depth -= 1
                if depth == 0 and start_idx is not None:
                    candidates.append(text[start_idx : i + 1])
                    start_idx = None
            continue

    return candidates


def _parse_model_output_json(content: str) -> Dict[str, Any]:
    cleaned = strip_code_fences(content)
    if not cleaned:
        raise MalformedResponseError("Vision model returned an empty answer")

    last_error: Exception | None = None
    for candidate in [cleaned, *_iter_json_object_candidates(cleaned)]:
        for attempt in (candidate, _remove_trailing_commas(candidate)):
            try:
                parsed = json.loads(attempt)
            except ValueError as exc:
                last_error = exc
                continue
            if isinstance(parsed, dict):
                return parsed

    raise MalformedResponseError(f"Vision model answer is not valid JSON: {last_error}")


_NUM_RE = re.compile(r"-?\d+(?:\.\d+)?")


def _coerce_float(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        # json.loads accepts NaN and Infinity.
        return float(value) if math.isfinite(value) else None
    if isinstance(value, str):
        m = _NUM_RE.search(value.strip().replace(",", ""))
        if not m:
            return None
        return float(m.group(0))
    return None


def _normalize_items(items: List[Any]) -> List[Dict[str, Any]]:
    out: List[Dict[str, Any]] = []
    for raw in items:
        if not isinstance(raw, dict):
            continue

        name = raw.get("name") or raw.get("food")
        name = str(name).strip() if name is not None else ""
        if not name:
            name = "unknown"

        portion = raw.get("estimatedPortion") or raw.get("estimated_portion") or raw.get("portion") or ""
        item: Dict[str, Any] = {"name": name, "estimated_portion": str(portion).strip()}

        for key in ("calories", "protein", "carbs", "fat"):
            value = _coerce_float(raw.get(key))
            item[key] = max(0.0, value) if value is not None else 0.0

        confidence = _coerce_float(raw.get("confidence"))
        if confidence is not None and 1 < confidence <= 100:
            confidence = confidence / 100.0
        item["confidence"] = max(0.0, min(1.0, confidence)) if confidence is not None else 0.0
        out.append(item)
    return out


def parse_food_analysis(content: str) -> FoodAnalysisResult:
    """Parse a full-analysis answer; totals are summed from the items."""
    parsed = _parse_model_output_json(content)
    foods_raw = parsed.get("foods")
    if not isinstance(foods_raw, list):
        raise MalformedResponseError("Vision model answer has no 'foods' list")

    foods = [FoodItem.model_validate(item) for item in _normalize_items(foods_raw)]
    totals = NutritionTotals(
        calories=round(sum(f.calories for f in foods), 1),
        protein=round(sum(f.protein for f in foods), 1),
        carbs=round(sum(f.carbs for f in foods), 1),
        fat=round(sum(f.fat for f in foods), 1),
    )
    return FoodAnalysisResult(foods=foods, total_nutrition=totals)


_LEADING_INT_RE = re.compile(r"^\s*([+-]?\d+)")


def parse_calorie_estimate(content: str) -> int:
    cleaned = strip_code_fences(content)
    m = _LEADING_INT_RE.match(cleaned)
    if not m:
        raise MalformedResponseError(f"Vision model answer is not a calorie count: {cleaned[:80]!r}")
    return int(m.group(1))


# ----------------------------------------------------------------------
# HTTP call
# ----------------------------------------------------------------------


def _extract_text_from_completion(data: object) -> str:
    if not isinstance(data, dict):
        return ""
    choices = data.get("choices")
    if not isinstance(choices, list) or not choices:
        return ""
    first = choices[0]
    if not isinstance(first, dict):
        return ""
    message = first.get("message")
    if isinstance(message, dict):
        content = message.get("content")
        if isinstance(content, str):
            return content
        if isinstance(content, list):
            return "".join(
                part.get("text", "") for part in content if isinstance(part, dict)
            )
    text = first.get("text")
    return text if isinstance(text, str) else ""


def _data_url(mime: str, image_bytes: bytes) -> str:
    b64 = base64.b64encode(image_bytes).decode("ascii")
    return f"data:{mime};base64,{b64}"


def _complete(
    cfg: VisionSettings,
    *,
    prompt: str,
    image_bytes: bytes,
    image_mime: str,
    max_tokens: int,
) -> str:
    payload: Dict[str, Any] = {
        "model": cfg.model,
        "messages": [
            {
                "role": "user",
                "content": [
                    {"type": "text", "text": prompt},
                    {"type": "image_url", "image_url": {"url": _data_url(image_mime, image_bytes)}},
                ],
            }
        ],
        "max_tokens": max_tokens,
        "temperature": cfg.temperature,
    }
    headers = {
        "Authorization": f"Bearer {cfg.api_key}",
        "Content-Type": "application/json",
    }
    with httpx.Client(timeout=cfg.timeout, follow_redirects=True) as client:
        resp = client.post(f"{cfg.base_url}/chat/completions", headers=headers, json=payload)
        resp.raise_for_status()
        try:
            data = resp.json()
        except ValueError as exc:
            snippet = (resp.text or "").replace("\n", " ").strip()[:200]
            raise MalformedResponseError(f"Vision API returned non-JSON response: {snippet}") from exc

    content = _extract_text_from_completion(data)
    if not content.strip():
        raise MalformedResponseError("Vision model returned no answer")
    return content


def analyze_food_image(*, image_bytes: bytes, image_mime: str = "image/jpeg") -> Tuple[FoodAnalysisResult, str]:
    if not image_bytes:
        raise ValidationError("No image provided")
    cfg = resolve_vision_settings()
    content = _complete(
        cfg,
        prompt=FULL_ANALYSIS_PROMPT,
        image_bytes=image_bytes,
        image_mime=image_mime,
        max_tokens=cfg.max_tokens,
    )
    try:
        return parse_food_analysis(content), cfg.model
    except MalformedResponseError:
        logger.warning("food analysis output could not be parsed: %r", content[:800], exc_info=True)
        raise


def analyze_calories_only(*, image_bytes: bytes, image_mime: str = "image/jpeg") -> Tuple[int, str]:
    if not image_bytes:
        raise ValidationError("No image provided")
    cfg = resolve_vision_settings()
    content = _complete(
        cfg,
        prompt=CALORIES_ONLY_PROMPT,
        image_bytes=image_bytes,
        image_mime=image_mime,
        max_tokens=CALORIES_ONLY_MAX_TOKENS,
    )
    try:
        return parse_calorie_estimate(content), cfg.model
    except MalformedResponseError:
        logger.warning("calorie estimate output could not be parsed: %r", content[:200], exc_info=True)
        raise
