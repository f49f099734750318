"""
Validation and sanitization of candidate recipes
"""

import logging
import re
from dataclasses import dataclass, field
from typing import List, Optional
from urllib.parse import urlparse

from recipe_config import ExtractionSettings
from recipe_models import SOURCE_URL, Ingredient, Recipe
from recipe_normalizer import coerce_int

logger = logging.getLogger(__name__)

SCRIPT_RE = re.compile(r"<script\b[^<]*(?:(?!</script>)<[^<]*)*</script>", re.IGNORECASE)
TAG_RE = re.compile(r"<[^>]*>")
ESCAPES = {
    "<": "&lt;",
    ">": "&gt;",
    "&": "&amp;",
    '"': "&quot;",
    "'": "&#x27;",
}
ESCAPE_RE = re.compile(r"[<>&\"']")


@dataclass
class ValidationResult:
    is_valid: bool
    errors: List[str] = field(default_factory=list)
    validated_recipe: Optional[Recipe] = None


def sanitize_text(text) -> str:
    """Remove scripts and tags, escape HTML-significant characters and trim."""
    if not text or not isinstance(text, str):
        return ""
    text = SCRIPT_RE.sub("", text)
    text = TAG_RE.sub("", text)
    text = ESCAPE_RE.sub(lambda m: ESCAPES[m.group(0)], text)
    return text.strip()


def validate_url(url, max_length: int = 2000) -> Optional[str]:
    """Return the trimmed URL if it is an absolute http(s) URL, else None."""
    if not url or not isinstance(url, str):
        return None
    trimmed = url.strip()
    if not trimmed or len(trimmed) > max_length:
        return None
    if any(ch.isspace() for ch in trimmed):
        return None
    try:
        parsed = urlparse(trimmed)
    except ValueError:
        return None
    if parsed.scheme.lower() not in ("http", "https") or not parsed.netloc:
        return None
    return trimmed


def validate_title(title, settings: ExtractionSettings) -> Optional[str]:
    sanitized = sanitize_text(title)
    if not settings.min_title_length <= len(sanitized) <= settings.max_title_length:
        return None
    return sanitized


def validate_int(value, low: int, high: int) -> Optional[int]:
    number = coerce_int(value)
    if number is None or number < low or number > high:
        return None
    return number


def validate_ingredients(ingredients) -> List[Ingredient]:
    validated = []
    for ingredient in ingredients or []:
        if isinstance(ingredient, dict):
            ingredient = Ingredient(
                amount=str(ingredient.get("amount") or ""),
                unit=str(ingredient.get("unit") or ""),
                item=str(ingredient.get("item") or ""),
            )
        elif not isinstance(ingredient, Ingredient):
            continue
        cleaned = Ingredient(
            amount=sanitize_text(ingredient.amount),
            unit=sanitize_text(ingredient.unit),
            item=sanitize_text(ingredient.item),
        )
        if cleaned.item:
            validated.append(cleaned)
    return validated


def validate_steps(steps) -> List[str]:
    return [s for s in (sanitize_text(step) for step in steps or []) if s]


def validate_recipe(candidate: Recipe, settings: Optional[ExtractionSettings] = None) -> ValidationResult:
    """Check every rule and collect all errors.

    A URL is required for URL-sourced recipes only; OCR and PDF recipes may
    omit it. An invalid image URL is dropped rather than rejected.
    """
    settings = settings or ExtractionSettings()
    errors = []

    url = None
    if candidate.url or candidate.source_type == SOURCE_URL:
        url = validate_url(candidate.url, settings.max_url_length)
        if url is None:
            errors.append("Invalid recipe URL")

    title = validate_title(candidate.title, settings)
    if title is None:
        errors.append("Invalid recipe title")

    servings = validate_int(candidate.servings, settings.min_servings, settings.max_servings)
    if servings is None:
        errors.append("Invalid serving count")

    prep_time = validate_int(candidate.prep_time, 0, settings.max_time_minutes)
    if prep_time is None:
        errors.append("Invalid preparation time")

    cook_time = validate_int(candidate.cook_time, 0, settings.max_time_minutes)
    if cook_time is None:
        errors.append("Invalid cooking time")

    ingredients = validate_ingredients(candidate.ingredients)
    if len(ingredients) < settings.min_ingredients:
        errors.append("Recipe must have at least one ingredient")

    steps = validate_steps(candidate.steps)
    if len(steps) < settings.min_steps:
        errors.append("Recipe must have at least one step")

    image_url = None
    if candidate.image_url:
        image_url = validate_url(candidate.image_url, settings.max_url_length)
        if image_url is None:
            logger.debug("Dropping invalid image URL: %.80s", candidate.image_url)

    if errors:
        logger.info("Recipe failed validation: %s", "; ".join(errors))
        return ValidationResult(is_valid=False, errors=errors)

    validated = Recipe(
        title=title,
        ingredients=ingredients,
        steps=steps,
        servings=servings,
        prep_time=prep_time,
        cook_time=cook_time,
        url=url,
        recipe_id=candidate.recipe_id or url,
        image_url=image_url,
        source_type=candidate.source_type,
    )
    return ValidationResult(is_valid=True, errors=[], validated_recipe=validated)
