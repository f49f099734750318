#!/usr/bin/env python3
"""
Recipe Tool - Extract recipes from webpages, photos and PDF text
"""

import logging
import sys
from typing import List, Optional
from urllib.parse import urljoin, urlparse

import requests

from recipe_config import ExtractionSettings
from recipe_entities import visible_text_length
from recipe_errors import ExtractionError, NetworkError, ValidationError
from recipe_models import SOURCE_OCR, SOURCE_PDF, SOURCE_TYPES, SOURCE_URL, CandidateRecipe, Ingredient, Recipe
from recipe_ocr import RecipeSynthesizer
from recipe_patterns import extract_by_pattern
from recipe_structured import extract_microdata, extract_structured
from recipe_trace import Tracer
from recipe_validator import validate_recipe, validate_url

__all__ = ["RecipeScraper", "Recipe", "Ingredient"]

logger = logging.getLogger(__name__)

JAVASCRIPT_HINT = "this site may require JavaScript to load content. Try using the photo feature instead."
CHECK_ORIGINAL_HINT = "please check the original recipe"
MINIMAL_CONTENT_HINT = "This site may require JavaScript to load content. Try using the photo feature instead."


def placeholder_text(field_name: str, minimal_content: bool) -> str:
    """Filler used when a field could not be extracted, e.g. 'Could not extract ingredients - ...'."""
    hint = JAVASCRIPT_HINT if minimal_content else CHECK_ORIGINAL_HINT
    return f"Could not extract {field_name} - {hint}"


def resolve_image_url(image_url: Optional[str], page_url: Optional[str]) -> Optional[str]:
    if not image_url:
        return None
    image_url = image_url.strip()
    if image_url.startswith("//"):
        return "https:" + image_url
    if page_url and not urlparse(image_url).scheme:
        return urljoin(page_url, image_url)
    return image_url


def default_title(url: Optional[str]) -> str:
    host = urlparse(url).hostname if url else None
    return f"Recipe from {host}" if host else "Untitled Recipe"


class RecipeScraper:
    """Extracts recipes from URLs, raw HTML and recipe text."""

    def __init__(self, settings: Optional[ExtractionSettings] = None,
                 session: Optional[requests.Session] = None,
                 synthesizer: Optional[RecipeSynthesizer] = None):
        self.settings = settings or ExtractionSettings()
        self.session = session or requests.Session()
        self.session.headers.update({
            'User-Agent': self.settings.user_agent,
            'Accept': 'text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8',
            'Accept-Language': 'en-US,en;q=0.9',
        })
        self._synthesizer = synthesizer

    @property
    def synthesizer(self) -> RecipeSynthesizer:
        if self._synthesizer is None:
            self._synthesizer = RecipeSynthesizer(settings=self.settings)
        return self._synthesizer

    def fetch_webpage(self, url: str) -> str:
        """Fetch the raw HTML of a page. A single attempt, no retries."""
        logger.info("Fetching %s", url)
        try:
            response = self.session.get(url, timeout=self.settings.fetch_timeout)
        except requests.RequestException as e:
            raise NetworkError(f"Failed to fetch webpage: {e}") from e

        if response.status_code >= 400:
            raise NetworkError(
                f"Failed to fetch webpage: HTTP {response.status_code}",
                status=response.status_code
            )
        return response.text

    def extract_recipe(self, url: str, trace: Tracer = None) -> Recipe:
        """Fetch a page and return its validated recipe."""
        valid_url = validate_url(url, self.settings.max_url_length)
        if valid_url is None:
            raise ValidationError("Invalid URL provided", hint="Enter a full http(s) recipe link.")

        try:
            html = self.fetch_webpage(valid_url)
        except NetworkError as e:
            raise ExtractionError(
                f"Could not load the recipe page: {e.message}",
                details={"cause": e, "status": e.status},
                hint="Check the link, or try using the photo feature instead."
            ) from e

        candidate = self.extract_from_html(html, url=valid_url, trace=trace)
        result = validate_recipe(candidate, self.settings)
        if not result.is_valid:
            minimal = visible_text_length(html) < self.settings.minimal_content_length
            raise ExtractionError(
                "Extracted recipe failed validation: " + "; ".join(result.errors),
                details={"errors": result.errors},
                hint=MINIMAL_CONTENT_HINT if minimal else None
            )

        logger.info("Extracted %r from %s", result.validated_recipe.title, valid_url)
        return result.validated_recipe

    def extract_from_html(self, html: str, url: Optional[str] = None, trace: Tracer = None) -> Recipe:
        """Best-effort recipe from raw HTML, before validation.

        Structured data fills what it can, microdata and then the pattern
        cascade fill whatever is still absent. Fields that no strategy found
        get defaults or placeholder text.
        """
        html = html or ""
        candidate = CandidateRecipe()

        structured = extract_structured(html, trace)
        if structured is not None:
            candidate.merge(structured)

        if not candidate.is_complete or candidate.title is None:
            microdata = extract_microdata(html, trace)
            if microdata is not None:
                filled = candidate.merge(microdata)
                logger.debug("Microdata filled: %s", filled)

        if candidate.missing():
            filled = extract_by_pattern(html, candidate, self.settings, trace)
            logger.debug("Patterns filled: %s", filled)

        minimal = visible_text_length(html) < self.settings.minimal_content_length
        return self._assemble(candidate, url, minimal)

    def _assemble(self, candidate: CandidateRecipe, url: Optional[str], minimal_content: bool) -> Recipe:
        settings = self.settings

        ingredients = candidate.ingredients
        if not ingredients:
            logger.warning("No ingredients found for %s", url or "document")
            ingredients = [Ingredient(item=placeholder_text("ingredients", minimal_content))]

        steps = candidate.steps
        if not steps:
            logger.warning("No instructions found for %s", url or "document")
            steps = [placeholder_text("instructions", minimal_content)]

        return Recipe(
            title=candidate.title or default_title(url),
            ingredients=list(ingredients),
            steps=list(steps),
            servings=candidate.servings if candidate.servings is not None else settings.default_servings,
            prep_time=candidate.prep_time if candidate.prep_time is not None else settings.default_prep_time,
            cook_time=candidate.cook_time if candidate.cook_time is not None else settings.default_cook_time,
            url=url,
            recipe_id=url,
            image_url=resolve_image_url(candidate.image_url, url),
            source_type=SOURCE_URL,
        )

    def extract_from_text(self, raw_text: str, source_type: str = SOURCE_OCR) -> Recipe:
        """Validated recipe from OCR or PDF text."""
        if source_type not in SOURCE_TYPES or source_type == SOURCE_URL:
            raise ValidationError(f"Unsupported source type: {source_type}")
        if not raw_text or not raw_text.strip():
            raise ValidationError("No recipe text provided")

        if source_type == SOURCE_PDF:
            recipe = self.synthesizer.synthesize_pdf_text(raw_text)
        else:
            recipe = self.synthesizer.synthesize(raw_text, source_type=source_type)
        return self._validate_synthesized(recipe)

    def extract_from_images(self, image_data_urls: List[str]) -> Recipe:
        """Validated recipe from one or more photographed pages, read in order."""
        if not image_data_urls:
            raise ValidationError("No images provided")
        recipe = self.synthesizer.synthesize_images(image_data_urls)
        return self._validate_synthesized(recipe)

    def _validate_synthesized(self, recipe: Recipe) -> Recipe:
        if not recipe.ingredients:
            recipe.ingredients = [Ingredient(item=placeholder_text("ingredients", False))]
        if not recipe.steps:
            recipe.steps = [placeholder_text("instructions", False)]

        result = validate_recipe(recipe, self.settings)
        if not result.is_valid:
            raise ExtractionError(
                "Recognized recipe failed validation: " + "; ".join(result.errors),
                details={"errors": result.errors},
                hint="Try a clearer photo, or enter the recipe manually."
            )
        return result.validated_recipe


def main(argv=None):
    """Print the recipe found at each URL given on the command line."""
    argv = sys.argv[1:] if argv is None else argv
    if not argv:
        print("Usage: recipe_tool.py URL [URL ...]")
        return 1

    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    scraper = RecipeScraper(ExtractionSettings.from_env())
    status = 0
    for url in argv:
        try:
            print(scraper.extract_recipe(url))
        except (ValidationError, ExtractionError) as e:
            print(f"❌ {e.message}")
            if e.hint:
                print(f"   {e.hint}")
            status = 1
    return status


if __name__ == "__main__":
    sys.exit(main())
