"""
Turn raw ingredient lines, instruction blobs, durations and yields into
recipe values
"""

import logging
import math
import re
from typing import List, Optional

from recipe_entities import clean_extracted_text
from recipe_models import Ingredient

logger = logging.getLogger(__name__)

VULGAR_FRACTIONS = "½⅓⅔¼¾⅛⅜⅝⅞"

# Units recognised after a quantity. Multi-word units come first so
# "fl oz" wins over "fl".
UNITS = [
    "fluid ounces", "fluid ounce", "fl oz", "fl. oz",
    "cups", "cup", "c",
    "tablespoons", "tablespoon", "tbsps", "tbsp", "tbs", "tbl",
    "teaspoons", "teaspoon", "tsps", "tsp",
    "ounces", "ounce", "oz",
    "pounds", "pound", "lbs", "lb",
    "grams", "gram", "g", "kilograms", "kilogram", "kg",
    "milliliters", "milliliter", "millilitres", "millilitre", "ml",
    "liters", "liter", "litres", "litre", "l",
    "pints", "pint", "pt", "quarts", "quart", "qt", "gallons", "gallon",
    "cloves", "clove", "cans", "can", "jars", "jar", "bottles", "bottle",
    "packages", "package", "pkgs", "pkg", "packets", "packet", "envelopes", "envelope",
    "sticks", "stick", "slices", "slice", "pieces", "piece",
    "bunches", "bunch", "heads", "head", "stalks", "stalk", "sprigs", "sprig",
    "handfuls", "handful", "pinches", "pinch", "dashes", "dash", "drops", "drop",
]
UNIT_RE = "|".join(re.escape(u) for u in UNITS)

QUANTITY_RE = rf"[\d\s./⁄{VULGAR_FRACTIONS}–-]*[\d{VULGAR_FRACTIONS}]"

INGREDIENT_PATTERN = re.compile(
    rf"^(?P<amount>{QUANTITY_RE})?\s*"
    rf"(?:\((?P<alt>[\d\s./{VULGAR_FRACTIONS}]+)[^)]*\)\s*)?"
    rf"(?P<unit>{UNIT_RE})\.?\s+"
    r"(?:of\s+)?(?P<item>.+)$",
    re.IGNORECASE
)

QUANTITY_ONLY_PATTERN = re.compile(
    rf"^(?P<amount>{QUANTITY_RE})\s*(?P<item>[^\d\s].*)$"
)

BULLET_RE = re.compile(r"^\s*[-*•·▪]\s*")

STEP_SPLIT_RE = re.compile(r"\n|(?:^|(?<=\s))\d{1,2}[.)]\s+")

ISO_DURATION_RE = re.compile(
    r"P(?:(?P<days>\d+)D)?T(?:(?P<hours>\d+)H)?(?:(?P<minutes>\d+)M)?",
    re.IGNORECASE
)


def parse_ingredient_line(text) -> Ingredient:
    """Parse an ingredient string into amount, unit and item.

    A leading quantity followed by a known unit fills all three fields. A
    quantity with no recognised unit leaves the unit empty. Anything else
    becomes the item.
    """
    if not isinstance(text, str):
        text = "" if text is None else str(text)
    text = BULLET_RE.sub("", clean_extracted_text(text))
    if not text:
        return Ingredient()

    match = INGREDIENT_PATTERN.match(text)
    if match and (match.group("amount") or match.group("alt")):
        amount = (match.group("amount") or match.group("alt") or "").strip()
        return Ingredient(
            amount=amount,
            unit=match.group("unit").strip(),
            item=match.group("item").strip()
        )

    match = QUANTITY_ONLY_PATTERN.match(text)
    if match:
        return Ingredient(
            amount=match.group("amount").strip(),
            unit="",
            item=match.group("item").strip()
        )

    return Ingredient(amount="", unit="", item=text)


def parse_ingredients(lines) -> List[Ingredient]:
    """Parse a list of raw ingredient lines, skipping ones that clean to nothing."""
    if isinstance(lines, str):
        lines = [lines]
    ingredients = []
    for line in lines or []:
        if isinstance(line, dict):
            line = line.get("text") or line.get("name") or ""
        parsed = parse_ingredient_line(line)
        if parsed.item:
            ingredients.append(parsed)
    return ingredients


def clean_step(text) -> str:
    return BULLET_RE.sub("", clean_extracted_text(text)).strip()


def parse_instruction_text(text: str, min_length: int = 6) -> List[str]:
    """Split an instruction blob on newlines or leading "N." numbering.

    Fragments shorter than ``min_length`` after cleaning are dropped.
    """
    if not text or not isinstance(text, str):
        return []
    # <br> and </p> are line breaks in HTML-ish instruction strings
    text = re.sub(r"<br\s*/?>|</p>", "\n", text, flags=re.IGNORECASE)
    steps = []
    for fragment in STEP_SPLIT_RE.split(text):
        step = clean_step(fragment)
        if len(step) >= min_length:
            steps.append(step)
    return steps


def parse_iso_duration(value) -> Optional[int]:
    """Convert an ISO 8601 duration such as ``PT1H30M`` to minutes.

    Returns None when the value holds neither an hours nor a minutes group.
    """
    if not value or not isinstance(value, str):
        return None
    match = ISO_DURATION_RE.search(value.strip())
    if not match:
        return None
    days, hours, minutes = match.group("days"), match.group("hours"), match.group("minutes")
    if hours is None and minutes is None:
        return None
    return int(days or 0) * 1440 + int(hours or 0) * 60 + int(minutes or 0)


def parse_servings(value) -> Optional[int]:
    """Extract a serving count from a recipeYield value."""
    if isinstance(value, list):
        value = value[0] if value else None
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        # json.loads accepts NaN and Infinity
        return int(value) if math.isfinite(value) else None
    if isinstance(value, str):
        match = re.search(r"\d+", value)
        if match:
            return int(match.group())
    logger.debug("Unrecognised yield value: %r", value)
    return None


def coerce_int(value) -> Optional[int]:
    """Read an integer the way a lenient form field would ("15 min" -> 15)."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else None
    if isinstance(value, str):
        match = re.match(r"\s*(-?\d+)", value)
        if match:
            return int(match.group(1))
    return None
