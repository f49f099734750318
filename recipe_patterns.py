"""
Heuristic HTML extraction for pages without usable structured data.

Each field is extracted by a cascade of strategies, from the most specific
markup pattern to loose blog-style heuristics. Strategies are plain
functions over the HTML string; the cascade runner decides when enough
items have been found to stop.
"""

import logging
import re
from typing import Callable, Iterable, List, Optional, Sequence, Tuple

from bs4 import BeautifulSoup

from recipe_config import ExtractionSettings
from recipe_entities import clean_extracted_text, decode_entities
from recipe_models import CandidateRecipe
from recipe_normalizer import parse_ingredient_line
from recipe_trace import ATTEMPTED, SUCCEEDED, Tracer, emit

logger = logging.getLogger(__name__)

_I = re.IGNORECASE
_IS = re.IGNORECASE | re.DOTALL

BOILERPLATE_PATTERNS = [
    re.compile(r"^(advertisement|sponsored|subscribe|sign up|log in|print|share|save|pin|email)\b", _I),
    re.compile(r"^(jump to|skip to|view|see|read more|click|tap)\b", _I),
    re.compile(r"^\d+\s*(comments?|reviews?|ratings?)\b", _I),
    re.compile(r"^(nutrition|calories|serving size)\b", _I),
]

TITLE_PATTERNS = [
    ("h1-recipe-class", re.compile(r'<h1[^>]*class=["\'][^"\']*recipe[^"\']*["\'][^>]*>([^<]+)</h1>', _I)),
    ("h1", re.compile(r"<h1[^>]*>([^<]+)</h1>", _I)),
    ("h2-recipe-class", re.compile(r'<h2[^>]*class=["\'][^"\']*recipe[^"\']*["\'][^>]*>([^<]+)</h2>', _I)),
    ("title-tag", re.compile(r"<title[^>]*>([^<]+)</title>", _I)),
]

# Families are tried in order; hits accumulate until the confidence
# threshold is passed.
INGREDIENT_FAMILIES = [
    ("generic", [
        r'<li[^>]*class="[^"]*ingredient[^"]*"[^>]*>(.*?)</li>',
        r'<li[^>]*itemprop="recipeIngredient"[^>]*>(.*?)</li>',
    ]),
    ("allrecipes", [
        r'<span[^>]*data-ingredient-name="true"[^>]*>(.*?)</span>',
        r'<li[^>]*class="[^"]*mntl-structured-ingredients__list-item[^"]*"[^>]*>(.*?)</li>',
    ]),
    ("food-network", [
        r'<span[^>]*class="[^"]*o-Ingredients__a-Ingredient[^"]*"[^>]*>(.*?)</span>',
    ]),
    ("epicurious", [
        r'<div[^>]*class="[^"]*ingredient[^"]*"[^>]*>(.*?)</div>',
    ]),
    ("tasty", [
        r'<li[^>]*class="[^"]*xs-mb1[^"]*"[^>]*>(.*?)</li>',
    ]),
    ("bbc-good-food", [
        r'<li[^>]*class="[^"]*pb-xxs[^"]*"[^>]*>(.*?)</li>',
    ]),
    ("generic-inline", [
        r'<span[^>]*class="[^"]*ingredient[^"]*"[^>]*>(.*?)</span>',
        r'<p[^>]*class="[^"]*ingredient[^"]*"[^>]*>(.*?)</p>',
    ]),
    ("data-attribute", [
        r'<[^>]*data-ingredient[^>]*>(.*?)</[^>]+>',
    ]),
    ("checkbox-label", [
        r'<label[^>]*class="[^"]*ingredient[^"]*"[^>]*>(.*?)</label>',
    ]),
]

STEP_FAMILIES = [
    ("allrecipes", [
        r'<li[^>]*data-testid="instruction-text"[^>]*>(.*?)</li>',
        r'<p[^>]*class="[^"]*mntl-sc-block-html[^"]*"[^>]*>(.*?)</p>',
        r'<div[^>]*class="[^"]*recipe-instruction[^"]*"[^>]*>(.*?)</div>',
    ]),
    ("food-network", [
        r'<li[^>]*class="[^"]*o-Method__m-Step[^"]*"[^>]*>(.*?)</li>',
    ]),
    ("epicurious", [
        r'<p[^>]*class="[^"]*instruction[^"]*"[^>]*>(.*?)</p>',
        r'<div[^>]*class="[^"]*step-instruction[^"]*"[^>]*>(.*?)</div>',
    ]),
    ("nyt-cooking", [
        r'<li[^>]*class="[^"]*recipe-steps[^"]*"[^>]*>(.*?)</li>',
    ]),
    ("bbc-good-food", [
        r'<li[^>]*class="[^"]*method-steps[^"]*"[^>]*>(.*?)</li>',
    ]),
    ("tasty", [
        r'<li[^>]*class="[^"]*prep-steps[^"]*"[^>]*>(.*?)</li>',
    ]),
    ("generic", [
        r'<li[^>]*class="[^"]*instruction[^"]*"[^>]*>(.*?)</li>',
        r'<li[^>]*class="[^"]*direction[^"]*"[^>]*>(.*?)</li>',
        r'<li[^>]*class="[^"]*step[^"]*"[^>]*>(.*?)</li>',
        r'<li[^>]*itemprop="recipeInstructions"[^>]*>(.*?)</li>',
        r'<div[^>]*class="[^"]*direction[^"]*"[^>]*>(.*?)</div>',
        r'<div[^>]*class="[^"]*step[^"]*"[^>]*>(.*?)</div>',
    ]),
    ("data-attribute", [
        r'<[^>]*data-instruction[^>]*>(.*?)</[^>]+>',
    ]),
]

INGREDIENT_LIST_PATTERNS = [
    re.compile(r'<ul[^>]*class="[^"]*ingredient[^"]*"[^>]*>(.*?)</ul>', _IS),
    re.compile(r'<ul[^>]*id="[^"]*ingredient[^"]*"[^>]*>(.*?)</ul>', _IS),
    re.compile(r'<div[^>]*class="[^"]*ingredient[^"]*"[^>]*>.*?<ul[^>]*>(.*?)</ul>', _IS),
]

STEP_LIST_PATTERNS = [
    re.compile(r'<ol[^>]*class="[^"]*(?:instruction|direction|method|step|recipe)[^"]*"[^>]*>(.*?)</ol>', _IS),
    re.compile(r'<ol[^>]*id="[^"]*(?:instruction|direction|method|step)[^"]*"[^>]*>(.*?)</ol>', _IS),
    re.compile(r'<ul[^>]*class="[^"]*(?:instruction|direction|method|step)[^"]*"[^>]*>(.*?)</ul>', _IS),
    re.compile(r'<div[^>]*class="[^"]*(?:instruction|direction|method)[^"]*"[^>]*>.*?<ol[^>]*>(.*?)</ol>', _IS),
]

LIST_ITEM_RE = re.compile(r"<li[^>]*>(.*?)</li>", _IS)
NUMBERED_PARAGRAPH_RE = re.compile(r"<p[^>]*>\s*(?:Step\s*)?\d+[.:]\s*(.*?)</p>", _IS)
MEASURE_HINT_RE = re.compile(r"\d|cup|tbsp|tsp|oz|lb|gram|ml|pinch|dash", _I)

INGREDIENT_HEADING_RE = re.compile(r"ingredients?", _I)
STEP_HEADING_RE = re.compile(r"instructions?|directions?|method|steps?|how to make", _I)
STEP_STRONG_RE = re.compile(r"instructions?|directions?|method", _I)

HEADINGS = ["h1", "h2", "h3", "h4", "h5", "h6"]
SECTION_HEADINGS = ["h2", "h3", "h4"]

IMAGE_PATTERNS = [
    ("og-image", re.compile(r'<meta[^>]*(?:property|name)=["\']og:image["\'][^>]*content=["\']([^"\']+)["\']', _I)),
    ("og-image-reversed", re.compile(r'<meta[^>]*content=["\']([^"\']+)["\'][^>]*(?:property|name)=["\']og:image["\']', _I)),
    ("twitter-image", re.compile(r'<meta[^>]*name=["\']twitter:image["\'][^>]*content=["\']([^"\']+)["\']', _I)),
    ("itemprop-image", re.compile(r'<img[^>]*itemprop=["\']image["\'][^>]*src=["\']([^"\']+)["\']', _I)),
    ("recipe-img", re.compile(r'<img[^>]*class=["\'][^"\']*recipe[^"\']*["\'][^>]*src=["\']([^"\']+)["\']', _I)),
    ("hero-img", re.compile(r'<img[^>]*class=["\'][^"\']*hero[^"\']*["\'][^>]*src=["\']([^"\']+)["\']', _I)),
    ("featured-img", re.compile(r'<img[^>]*class=["\'][^"\']*featured[^"\']*["\'][^>]*src=["\']([^"\']+)["\']', _I)),
    ("lazy-img", re.compile(r'<img[^>]*data-src=["\']([^"\']+)["\'][^>]*class=["\'][^"\']*recipe', _I)),
    ("picture-source", re.compile(r'<source[^>]*srcset=["\']([^"\']+)["\'][^>]*type=["\']image', _I)),
]

Fragment = Tuple[int, str]
FamilyStrategy = Callable[[str, int], List[Fragment]]
FallbackStrategy = Callable[[str], List[str]]


def is_boilerplate(text: str, max_length: int = 500) -> bool:
    """True for ads, navigation, counters and nutrition labels, or overlong text."""
    if not text:
        return False
    stripped = text.strip()
    if len(stripped) > max_length:
        return True
    return any(pattern.search(stripped) for pattern in BOILERPLATE_PATTERNS)


def _accept(text: str, min_length: int, settings: ExtractionSettings) -> bool:
    return bool(text) and len(text) > min_length and not is_boilerplate(text, settings.boilerplate_max_length)


def _family(patterns: Sequence[str], settings: ExtractionSettings) -> FamilyStrategy:
    compiled = [re.compile(p, _IS) for p in patterns]

    def strategy(html: str, min_length: int) -> List[Fragment]:
        fragments = []
        for pattern in compiled:
            for match in pattern.finditer(html):
                text = clean_extracted_text(match.group(1))
                if _accept(text, min_length, settings):
                    fragments.append((match.start(1), text))
        return fragments

    return strategy


def run_family_cascade(
    stage: str,
    html: str,
    families: Iterable[Tuple[str, FamilyStrategy]],
    min_length: int,
    threshold: int,
    trace: Tracer = None,
) -> List[str]:
    """Accumulate fragments family by family until more than ``threshold``.

    A fragment starting at an offset already taken by an earlier pattern is
    the same element matched twice and is skipped.
    """
    collected: List[str] = []
    seen_offsets = set()
    for name, strategy in families:
        emit(trace, stage, name, ATTEMPTED)
        added = 0
        for offset, text in strategy(html, min_length):
            if offset in seen_offsets:
                continue
            seen_offsets.add(offset)
            collected.append(text)
            added += 1
        if added:
            emit(trace, stage, name, SUCCEEDED, count=added)
            logger.debug("%s: family %s matched %d item(s)", stage, name, added)
        if len(collected) > threshold:
            break
    return collected


def run_fallbacks(stage: str, html: str, fallbacks: Iterable[Tuple[str, FallbackStrategy]],
                  trace: Tracer = None) -> List[str]:
    """Return the result of the first fallback strategy that finds anything."""
    for name, strategy in fallbacks:
        emit(trace, stage, name, ATTEMPTED)
        found = strategy(html)
        if found:
            emit(trace, stage, name, SUCCEEDED, count=len(found))
            logger.debug("%s: fallback %s matched %d item(s)", stage, name, len(found))
            return found
    return []


# ---------- title & image ----------

def clean_title(raw: str) -> str:
    title = decode_entities(raw.strip())
    title = re.sub(r"\s*\|.*$", "", title)
    title = re.sub(r"^Recipe\s*[-–]\s*", "", title, flags=_I)
    return title.strip()


def extract_title(html: str, trace: Tracer = None) -> Optional[str]:
    for name, pattern in TITLE_PATTERNS:
        emit(trace, "title", name, ATTEMPTED)
        match = pattern.search(html)
        if match and match.group(1).strip():
            title = clean_title(match.group(1))
            if title:
                emit(trace, "title", name, SUCCEEDED, count=1)
                return title
    return None


def first_srcset_candidate(value: str) -> str:
    value = value.strip()
    if " " in value:
        value = value.split()[0]
    if "," in value:
        value = value.split(",")[0]
    return value.strip()


def extract_image(html: str, trace: Tracer = None) -> Optional[str]:
    for name, pattern in IMAGE_PATTERNS:
        emit(trace, "image", name, ATTEMPTED)
        match = pattern.search(html)
        if match and match.group(1).strip():
            emit(trace, "image", name, SUCCEEDED, count=1)
            return first_srcset_candidate(decode_entities(match.group(1)))
    return None


# ---------- ingredients ----------

def ingredients_from_lists(html: str, settings: ExtractionSettings) -> List[str]:
    found: List[str] = []
    for list_pattern in INGREDIENT_LIST_PATTERNS:
        for list_match in list_pattern.finditer(html):
            for li in LIST_ITEM_RE.finditer(list_match.group(1)):
                text = clean_extracted_text(li.group(1))
                if _accept(text, settings.min_ingredient_length, settings):
                    found.append(text)
            if len(found) > settings.ingredient_confidence_threshold:
                return found
    return found


def _section_elements(anchor, stop_tags: Sequence[str]):
    """Yield the elements after ``anchor`` up to the next heading."""
    for element in anchor.find_all_next(True):
        if element.name in stop_tags:
            return
        yield element


def _blog_anchors(soup: BeautifulSoup, heading_re, strong_re):
    for heading in soup.find_all(SECTION_HEADINGS):
        if heading_re.search(heading.get_text(" ", strip=True)):
            yield heading, HEADINGS
    for bold in soup.find_all(["strong", "b"]):
        if strong_re.search(bold.get_text(" ", strip=True)):
            yield bold, SECTION_HEADINGS + ["strong", "b"]


def ingredients_from_blog(html: str, settings: ExtractionSettings) -> List[str]:
    """Items following a heading or bold label that mentions ingredients."""
    soup = BeautifulSoup(html, "html.parser")
    found: List[str] = []
    for anchor, stop_tags in _blog_anchors(soup, INGREDIENT_HEADING_RE, INGREDIENT_HEADING_RE):
        elements = list(_section_elements(anchor, stop_tags))
        items = [el for el in elements if el.name == "li"]
        if items:
            for li in items:
                text = clean_extracted_text(li.get_text(" "))
                if _accept(text, settings.min_ingredient_length, settings):
                    found.append(text)
        else:
            for p in (el for el in elements if el.name == "p"):
                text = clean_extracted_text(p.get_text(" "))
                if 3 < len(text) < 200 and MEASURE_HINT_RE.search(text):
                    found.append(text)
        if len(found) > settings.ingredient_confidence_threshold:
            break
    return found


def extract_ingredient_texts(html: str, settings: ExtractionSettings, trace: Tracer = None) -> List[str]:
    families = [(name, _family(patterns, settings)) for name, patterns in INGREDIENT_FAMILIES]
    found = run_family_cascade(
        "ingredients", html, families,
        settings.min_ingredient_length, settings.ingredient_confidence_threshold, trace
    )
    if found:
        return found
    return run_fallbacks("ingredients", html, [
        ("ingredient-lists", lambda h: ingredients_from_lists(h, settings)),
        ("blog-headings", lambda h: ingredients_from_blog(h, settings)),
    ], trace)


# ---------- steps ----------

def steps_from_lists(html: str, settings: ExtractionSettings) -> List[str]:
    found: List[str] = []
    for list_pattern in STEP_LIST_PATTERNS:
        for list_match in list_pattern.finditer(html):
            for li in LIST_ITEM_RE.finditer(list_match.group(1)):
                text = clean_extracted_text(li.group(1))
                if _accept(text, settings.min_step_length, settings):
                    found.append(text)
            if len(found) > settings.step_confidence_threshold:
                return found
    return found


def steps_from_blog(html: str, settings: ExtractionSettings) -> List[str]:
    """Steps following an instructions/directions/method heading."""
    soup = BeautifulSoup(html, "html.parser")
    found: List[str] = []
    for anchor, stop_tags in _blog_anchors(soup, STEP_HEADING_RE, STEP_STRONG_RE):
        elements = list(_section_elements(anchor, stop_tags))
        ordered = next((el for el in elements if el.name == "ol"), None)
        if ordered is not None:
            for li in ordered.find_all("li"):
                text = clean_extracted_text(li.get_text(" "))
                if _accept(text, settings.min_step_length, settings):
                    found.append(text)
        else:
            for p in (el for el in elements if el.name == "p"):
                text = clean_extracted_text(p.get_text(" "))
                if _accept(text, settings.blog_step_paragraph_min_length, settings):
                    found.append(text)
        if len(found) > settings.step_confidence_threshold:
            break
    return found


def steps_from_numbered_paragraphs(html: str, settings: ExtractionSettings) -> List[str]:
    found = []
    for match in NUMBERED_PARAGRAPH_RE.finditer(html):
        text = clean_extracted_text(match.group(1))
        if _accept(text, settings.min_step_length, settings):
            found.append(text)
    return found


def extract_step_texts(html: str, settings: ExtractionSettings, trace: Tracer = None) -> List[str]:
    families = [(name, _family(patterns, settings)) for name, patterns in STEP_FAMILIES]
    found = run_family_cascade(
        "steps", html, families,
        settings.min_step_length, settings.step_confidence_threshold, trace
    )
    if found:
        return found

    found = run_fallbacks("steps", html, [
        ("step-lists", lambda h: steps_from_lists(h, settings)),
        ("blog-headings", lambda h: steps_from_blog(h, settings)),
        ("numbered-paragraphs", lambda h: steps_from_numbered_paragraphs(h, settings)),
    ], trace)
    if found:
        return found

    # Short steps ("Preheat oven.") beat a placeholder
    relaxed = [(f"{name}-relaxed", strategy) for name, strategy in families]
    return run_family_cascade(
        "steps", html, relaxed,
        settings.relaxed_step_min_length, settings.step_confidence_threshold, trace
    )


# ---------- entry point ----------

def extract_by_pattern(html: str, candidate: CandidateRecipe,
                       settings: Optional[ExtractionSettings] = None,
                       trace: Tracer = None) -> List[str]:
    """Fill the fields of ``candidate`` that are still absent.

    Returns the names of the fields that were filled.
    """
    settings = settings or ExtractionSettings()
    html = html or ""
    filled = []

    if candidate.title is None:
        candidate.title = extract_title(html, trace)
        if candidate.title is not None:
            filled.append("title")

    if candidate.ingredients is None:
        texts = extract_ingredient_texts(html, settings, trace)
        ingredients = [ing for ing in (parse_ingredient_line(t) for t in texts) if ing.item]
        if ingredients:
            candidate.ingredients = ingredients
            filled.append("ingredients")

    if candidate.steps is None:
        steps = extract_step_texts(html, settings, trace)
        if steps:
            candidate.steps = steps
            filled.append("steps")

    if candidate.image_url is None:
        candidate.image_url = extract_image(html, trace)
        if candidate.image_url is not None:
            filled.append("image_url")

    logger.debug("Pattern extraction filled: %s", ", ".join(filled) or "nothing")
    return filled
