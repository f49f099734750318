"""
Extract recipes from Schema.org structured data (JSON-LD and microdata)
"""

import json
import logging
import re
from typing import Any, List, Optional

from bs4 import BeautifulSoup

from recipe_entities import clean_extracted_text
from recipe_models import CandidateRecipe
from recipe_normalizer import (
    clean_step,
    parse_ingredients,
    parse_instruction_text,
    parse_iso_duration,
    parse_servings,
)
from recipe_trace import ATTEMPTED, FAILED, SUCCEEDED, Tracer, emit

logger = logging.getLogger(__name__)

STAGE = "structured"

HTML_COMMENT_RE = re.compile(r"<!--[\s\S]*?-->")
TRAILING_COMMA_RE = re.compile(r",\s*([}\]])")

STEP_TEXT_KEYS = ("text", "name", "description", "instruction")


def _soup(html) -> BeautifulSoup:
    if isinstance(html, BeautifulSoup):
        return html
    return BeautifulSoup(html or "", "html.parser")


def find_json_ld_blocks(html) -> List[str]:
    """Return the raw contents of every JSON-LD script, in document order."""
    soup = _soup(html)
    scripts = soup.find_all("script", type=lambda t: bool(t) and "ld+json" in t.lower())
    return [script.string or script.get_text() or "" for script in scripts]


def clean_json_ld(raw: str, unescape: bool = True) -> str:
    """Repair the authoring errors commonly found in JSON-LD blocks."""
    cleaned = raw.strip()
    cleaned = HTML_COMMENT_RE.sub("", cleaned).strip()
    cleaned = re.sub(r"^(?://\s*)?<!\[CDATA\[", "", cleaned)
    cleaned = re.sub(r"(?://\s*)?\]\]>$", "", cleaned).strip()

    if unescape:
        cleaned = cleaned.replace("&quot;", '"')
        cleaned = cleaned.replace("&amp;", "&")
        cleaned = cleaned.replace("&lt;", "<")
        cleaned = cleaned.replace("&gt;", ">")

    return TRAILING_COMMA_RE.sub(r"\1", cleaned)


def parse_json_ld(raw: str) -> Any:
    """Parse a JSON-LD block, trying the entity-unescaped form first.

    Raises ValueError when neither form parses.
    """
    last_error = None
    for unescape in (True, False):
        try:
            return json.loads(clean_json_ld(raw, unescape=unescape), strict=False)
        except ValueError as e:
            last_error = e
    raise ValueError(str(last_error))


def is_recipe_type(type_value) -> bool:
    if isinstance(type_value, str):
        return type_value.strip().lower() == "recipe"
    if isinstance(type_value, list):
        return any(isinstance(t, str) and t.strip().lower() == "recipe" for t in type_value)
    return False


def find_recipe(data) -> Optional[dict]:
    """Find the first Recipe-typed record in a parsed JSON-LD value."""
    if isinstance(data, list):
        for item in data:
            result = find_recipe(item)
            if result is not None:
                return result
        return None

    if not isinstance(data, dict):
        return None

    if is_recipe_type(data.get("@type")):
        return data

    graph = data.get("@graph")
    if isinstance(graph, (list, dict)):
        result = find_recipe(graph)
        if result is not None:
            return result

    items = data.get("itemListElement")
    if isinstance(items, list):
        for element in items:
            if not isinstance(element, dict):
                continue
            if is_recipe_type(element.get("@type")):
                return element
            nested = element.get("item")
            if isinstance(nested, dict) and is_recipe_type(nested.get("@type")):
                return nested

    # Pages sometimes nest the recipe under mainEntity or similar
    for key, value in data.items():
        if key in ("@graph", "itemListElement"):
            continue
        if isinstance(value, (dict, list)):
            result = find_recipe(value)
            if result is not None:
                return result
    return None


def _image_url(image) -> Optional[str]:
    if isinstance(image, list):
        image = image[0] if image else None
    if isinstance(image, dict):
        image = image.get("url") or image.get("contentUrl")
    if isinstance(image, str) and image.strip():
        return image.strip()
    return None


def _is_section(entry: dict) -> bool:
    type_value = entry.get("@type")
    types = type_value if isinstance(type_value, list) else [type_value]
    if any(isinstance(t, str) and "section" in t.lower() for t in types):
        return True
    # HowToStep wrappers without their own text still group steps
    has_text = any(isinstance(entry.get(key), str) and entry.get(key).strip() for key in ("text", "description", "instruction"))
    return not has_text and isinstance(entry.get("itemListElement"), list)


def extract_step_text(entry) -> str:
    """Text of a single instruction entry (string or HowToStep-like object)."""
    if isinstance(entry, str):
        return clean_step(entry)
    if not isinstance(entry, dict):
        return ""
    for key in STEP_TEXT_KEYS:
        value = entry.get(key)
        if isinstance(value, str) and value.strip():
            return clean_step(value)
    nested = entry.get("item")
    if isinstance(nested, dict) and isinstance(nested.get("text"), str):
        return clean_step(nested["text"])
    return ""


def parse_instructions(instructions) -> List[str]:
    """Flatten recipeInstructions (string, list, HowToStep, HowToSection)."""
    if isinstance(instructions, str):
        return parse_instruction_text(instructions)
    if isinstance(instructions, dict):
        instructions = [instructions]
    if not isinstance(instructions, list):
        return []

    steps = []
    for entry in instructions:
        if isinstance(entry, dict) and _is_section(entry):
            for key in ("itemListElement", "steps"):
                nested = entry.get(key)
                if isinstance(nested, (list, dict)):
                    steps.extend(parse_instructions(nested))
            continue
        text = extract_step_text(entry)
        if text:
            steps.append(text)
    return steps


def project_recipe(data: dict) -> CandidateRecipe:
    """Map a Schema.org Recipe record onto a candidate recipe."""
    candidate = CandidateRecipe()

    candidate.title = clean_extracted_text(data.get("name")) or None

    candidate.image_url = _image_url(data.get("image"))
    candidate.servings = parse_servings(data.get("recipeYield") or data.get("yield"))
    candidate.prep_time = parse_iso_duration(data.get("prepTime"))
    candidate.cook_time = parse_iso_duration(data.get("cookTime"))

    raw_ingredients = data.get("recipeIngredient") or data.get("ingredients")
    ingredients = parse_ingredients(raw_ingredients) if raw_ingredients else []
    candidate.ingredients = ingredients or None

    steps = parse_instructions(data.get("recipeInstructions"))
    candidate.steps = steps or None
    return candidate


def extract_structured(html, trace: Tracer = None) -> Optional[CandidateRecipe]:
    """Extract a candidate recipe from the page's JSON-LD blocks.

    Blocks that fail to parse are skipped. Returns None when no block holds
    a Recipe record.
    """
    for index, raw in enumerate(find_json_ld_blocks(html)):
        strategy = f"json-ld[{index}]"
        emit(trace, STAGE, strategy, ATTEMPTED)
        try:
            data = parse_json_ld(raw)
        except ValueError as e:
            logger.warning("JSON-LD block %d could not be parsed: %s", index, e)
            emit(trace, STAGE, strategy, FAILED, detail=str(e))
            continue

        recipe_data = find_recipe(data)
        if recipe_data is None:
            logger.debug("JSON-LD block %d has no Recipe record", index)
            continue

        candidate = project_recipe(recipe_data)
        count = len(candidate.ingredients or []) + len(candidate.steps or [])
        emit(trace, STAGE, strategy, SUCCEEDED, count=count)
        logger.debug("Found Recipe in JSON-LD block %d", index)
        return candidate

    return None


def _prop_value(element) -> str:
    for attr in ("content", "datetime", "src", "href"):
        value = element.get(attr)
        if value:
            return value.strip()
    return element.get_text(" ", strip=True)


def _props(scope, prop) -> list:
    """Elements carrying ``prop`` that belong to ``scope`` itself.

    Inside a Recipe itemscope, properties of nested items (an author's
    name, a review's rating) are skipped.
    """
    elements = scope.find_all(attrs={"itemprop": prop})
    if isinstance(scope, BeautifulSoup):
        return elements
    return [el for el in elements if el.find_parent(attrs={"itemscope": True}) is scope]


def _prop(scope, prop):
    elements = _props(scope, prop)
    return elements[0] if elements else None


def extract_microdata(html, trace: Tracer = None) -> Optional[CandidateRecipe]:
    """Extract a candidate recipe from itemprop attributes.

    Looks inside the Recipe itemscope when there is one, otherwise across
    the whole document. Returns None unless ingredients or steps were found.
    """
    emit(trace, STAGE, "microdata", ATTEMPTED)
    soup = _soup(html)
    scope = soup.find(attrs={"itemtype": re.compile(r"schema\.org/Recipe", re.I)}) or soup

    candidate = CandidateRecipe()

    name = _prop(scope, "name")
    if name is not None:
        title = clean_extracted_text(_prop_value(name))
        candidate.title = title or None

    ingredient_lines = []
    for element in _props(scope, re.compile(r"^(recipeIngredient|ingredients)$")):
        text = clean_extracted_text(_prop_value(element))
        if len(text) > 2:
            ingredient_lines.append(text)
    candidate.ingredients = parse_ingredients(ingredient_lines) or None

    steps = []
    for element in _props(scope, "recipeInstructions"):
        items = element.find_all("li")
        if items:
            for li in items:
                text = clean_step(li.get_text(" ", strip=True))
                if len(text) > 5:
                    steps.append(text)
        else:
            steps.extend(parse_instruction_text(element.get_text("\n", strip=True)))
    candidate.steps = steps or None

    image = _prop(scope, "image")
    if image is not None:
        candidate.image_url = _prop_value(image) or None

    recipe_yield = _prop(scope, "recipeYield")
    if recipe_yield is not None:
        candidate.servings = parse_servings(_prop_value(recipe_yield))
    for prop, attr in (("prepTime", "prep_time"), ("cookTime", "cook_time")):
        element = _prop(scope, prop)
        if element is not None:
            setattr(candidate, attr, parse_iso_duration(_prop_value(element)))

    if not candidate.ingredients and not candidate.steps:
        return None

    emit(trace, STAGE, "microdata", SUCCEEDED,
         count=len(candidate.ingredients or []) + len(candidate.steps or []))
    return candidate
