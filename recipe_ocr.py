"""
Turn photographed or scanned recipe text into a Recipe using Claude
"""

import base64
import json
import logging
import os
import re
from typing import List, Optional

import anthropic

from recipe_config import ExtractionSettings, api_key_configured
from recipe_entities import clean_extracted_text
from recipe_errors import ApiError, ConfigurationError, ExtractionError, ValidationError
from recipe_models import SOURCE_OCR, SOURCE_PDF, Ingredient, Recipe, generate_recipe_id
from recipe_normalizer import clean_step, coerce_int, parse_ingredient_line

logger = logging.getLogger(__name__)

SUPPORTED_IMAGE_TYPES = ("image/jpeg", "image/png", "image/webp")

DATA_URL_RE = re.compile(r"^data:(?P<media_type>[\w.+-]+/[\w.+-]+);base64,(?P<data>.+)$", re.S)
CODE_FENCE_RE = re.compile(r"```(?:json)?\s*([\s\S]*?)\s*```")
JSON_OBJECT_RE = re.compile(r"\{.*\}", re.S)

FALLBACK_HEADER = "Original text from image:"

OCR_PROMPT = """Please extract ALL text from this image. This appears to be a recipe, so pay special attention to:
- Recipe title
- Ingredients list with quantities
- Step-by-step instructions
- Cooking times, temperatures, serving sizes

Return the text exactly as it appears, preserving formatting and structure. If there are multiple columns or sections, keep that organization."""

STRUCTURE_PROMPT = """Parse this recipe text and return ONLY a valid JSON object in this exact format, no other text:

{
  "title": "Recipe title",
  "ingredients": [
    {"amount": "2", "unit": "cups", "item": "flour"},
    {"amount": "", "unit": "", "item": "salt"}
  ],
  "steps": ["First step here.", "Second step here."],
  "servings": 4,
  "prepTime": 15,
  "cookTime": 30
}

Rules:
- Extract ONLY actual ingredients, not section headers like "Ingredients"
- Extract ONLY actual cooking steps, not section headers like "Instructions" or "Directions"
- amount and unit are strings; use an empty string when not specified (e.g., "2 eggs" has no unit)
- Times are whole minutes; servings is a whole number; use null when not specified
- Return ONLY the JSON, no markdown code blocks, no explanation

Recipe text to parse:

"""

DEFAULT_TITLES = {
    SOURCE_OCR: "Recipe from Photo",
    SOURCE_PDF: "Recipe from PDF",
}


def image_to_data_url(data: bytes, media_type: str) -> str:
    encoded = base64.standard_b64encode(data).decode("utf-8")
    return f"data:{media_type};base64,{encoded}"


def validate_image_upload(media_type: Optional[str], size: int, settings: Optional[ExtractionSettings] = None) -> str:
    """Check an uploaded image's type and size, returning the media type to use."""
    settings = settings or ExtractionSettings()
    media_type = (media_type or "").split(";")[0].strip().lower()
    if media_type == "image/jpg":
        media_type = "image/jpeg"
    if media_type not in SUPPORTED_IMAGE_TYPES:
        raise ValidationError(
            f"Unsupported image type: {media_type or 'unknown'}",
            hint="Upload a JPEG, PNG or WebP photo."
        )
    if size <= 0:
        raise ValidationError("Uploaded image is empty")
    if size > settings.max_image_bytes:
        limit_mb = settings.max_image_bytes // (1024 * 1024)
        raise ValidationError(f"Image is too large (limit {limit_mb} MB)")
    return media_type


def _split_data_url(image_data_url: str):
    match = DATA_URL_RE.match(image_data_url or "")
    if not match:
        raise ValidationError("Image must be a base64 data URL")
    return match.group("media_type").lower(), match.group("data")


def extract_json_object(text: str) -> Optional[dict]:
    """Pull the first JSON object out of a model reply.

    Handles Markdown code fences and prose around the object.
    """
    if not text:
        return None
    text = text.strip()

    if "```" in text:
        fenced = CODE_FENCE_RE.search(text)
        if fenced:
            text = fenced.group(1)

    try:
        data = json.loads(text)
    except ValueError:
        match = JSON_OBJECT_RE.search(text)
        if not match:
            return None
        try:
            data = json.loads(match.group(0))
        except ValueError:
            return None
    return data if isinstance(data, dict) else None


class AnthropicVisionClient:
    """Reads text out of images and structures recipe text with Claude."""

    def __init__(self, api_key: Optional[str] = None, settings: Optional[ExtractionSettings] = None):
        self.api_key = os.environ.get("ANTHROPIC_API_KEY", "") if api_key is None else api_key
        self.settings = settings or ExtractionSettings()
        self._client = None

    @property
    def configured(self) -> bool:
        return api_key_configured(self.api_key)

    def _get_client(self):
        if not self.configured:
            raise ConfigurationError(
                "ANTHROPIC_API_KEY not set",
                hint="Run: export ANTHROPIC_API_KEY=your-key"
            )
        if self._client is None:
            self._client = anthropic.Anthropic(api_key=self.api_key)
        return self._client

    def _create(self, content) -> str:
        client = self._get_client()
        try:
            message = client.messages.create(
                model=self.settings.anthropic_model,
                max_tokens=self.settings.anthropic_max_tokens,
                messages=[{"role": "user", "content": content}],
            )
        except anthropic.APIStatusError as e:
            raise ApiError(f"Anthropic API error: {e.message}", status=e.status_code) from e
        except anthropic.APIError as e:
            raise ApiError(f"Anthropic API error: {e}") from e

        return "".join(
            block.text for block in message.content if getattr(block, "type", None) == "text"
        ).strip()

    def extract_text(self, image_data_url: str) -> str:
        """Return all text visible in an image given as a base64 data URL."""
        media_type, data = _split_data_url(image_data_url)
        text = self._create([
            {
                "type": "image",
                "source": {"type": "base64", "media_type": media_type, "data": data},
            },
            {"type": "text", "text": OCR_PROMPT},
        ])
        if not text:
            raise ExtractionError("No text extracted from image")
        return text

    def complete(self, prompt: str) -> str:
        return self._create(prompt)


class RecipeSynthesizer:
    """Structures raw recipe text into a Recipe via a completion client.

    The client needs ``complete(prompt)`` and, for the image path,
    ``extract_text(image_data_url)``.
    """

    def __init__(self, client=None, settings: Optional[ExtractionSettings] = None):
        self.settings = settings or ExtractionSettings()
        self.client = client if client is not None else AnthropicVisionClient(settings=self.settings)

    def synthesize(self, raw_text: str, source_type: str = SOURCE_OCR) -> Recipe:
        """Build a best-effort recipe from free-form text.

        When the reply holds no usable JSON the raw text is kept as steps so
        nothing is lost. Provider errors propagate.
        """
        reply = self.client.complete(STRUCTURE_PROMPT + raw_text)
        data = extract_json_object(reply)
        if data is None:
            logger.warning("Could not parse structured recipe from reply, keeping raw text")
            return self._fallback(raw_text, source_type)

        ingredients = self._ingredients(data.get("ingredients"))
        steps = self._steps(data.get("steps"))
        if not ingredients and not steps:
            steps = [FALLBACK_HEADER, raw_text]

        title = data.get("title")
        title = clean_extracted_text(title) if isinstance(title, str) else ""

        recipe = Recipe(
            title=title or DEFAULT_TITLES.get(source_type, "Untitled Recipe"),
            ingredients=ingredients,
            steps=steps,
            servings=self._number(data.get("servings"), self.settings.default_servings, positive=True),
            prep_time=self._number(data.get("prepTime"), self.settings.default_prep_time),
            cook_time=self._number(data.get("cookTime"), self.settings.default_cook_time),
            recipe_id=generate_recipe_id(source_type),
            source_type=source_type,
        )
        logger.info("Synthesized recipe %r: %d ingredients, %d steps",
                    recipe.title, len(recipe.ingredients), len(recipe.steps))
        return recipe

    def synthesize_images(self, image_data_urls: List[str], source_type: str = SOURCE_OCR) -> Recipe:
        """Read each page in order and synthesize one recipe from the combined text."""
        sections = []
        for page, image_data_url in enumerate(image_data_urls, 1):
            logger.info("Extracting text from page %d of %d", page, len(image_data_urls))
            text = (self.client.extract_text(image_data_url) or "").strip()
            if text:
                sections.append(f"--- Page {page} ---\n{text}")
            else:
                logger.warning("No text found on page %d", page)

        if not sections:
            raise ExtractionError(
                "No text could be extracted from any of the images",
                hint="Try a sharper, well-lit photo of the recipe."
            )
        return self.synthesize("\n\n".join(sections), source_type=source_type)

    def synthesize_pdf_text(self, text: str) -> Recipe:
        text = (text or "").strip()
        if len(re.sub(r"\s", "", text)) < self.settings.min_pdf_text_length:
            raise ExtractionError(
                "Not enough text found in PDF",
                hint="This may be a scanned PDF. Try uploading photos of the pages instead."
            )
        return self.synthesize(text, source_type=SOURCE_PDF)

    def _fallback(self, raw_text: str, source_type: str) -> Recipe:
        return Recipe(
            title=DEFAULT_TITLES.get(source_type, "Untitled Recipe"),
            ingredients=[],
            steps=[FALLBACK_HEADER, raw_text],
            servings=self.settings.default_servings,
            prep_time=self.settings.default_prep_time,
            cook_time=self.settings.default_cook_time,
            recipe_id=generate_recipe_id(source_type),
            source_type=source_type,
        )

    @staticmethod
    def _ingredients(raw) -> List[Ingredient]:
        if not isinstance(raw, list):
            return []
        ingredients = []
        for entry in raw:
            if isinstance(entry, str):
                ingredient = parse_ingredient_line(entry)
            elif isinstance(entry, dict):
                item = entry.get("item") or entry.get("name") or ""
                ingredient = Ingredient(
                    amount=clean_extracted_text(str(entry.get("amount") or entry.get("quantity") or "")),
                    unit=clean_extracted_text(str(entry.get("unit") or "")),
                    item=clean_extracted_text(str(item)),
                )
            else:
                continue
            if ingredient.item:
                ingredients.append(ingredient)
        return ingredients

    @staticmethod
    def _steps(raw) -> List[str]:
        if isinstance(raw, str):
            raw = [raw]
        if not isinstance(raw, list):
            return []
        steps = []
        for entry in raw:
            if isinstance(entry, dict):
                entry = entry.get("text") or ""
            step = clean_step(str(entry)) if entry else ""
            if step:
                steps.append(step)
        return steps

    @staticmethod
    def _number(value, default: int, positive: bool = False) -> int:
        number = coerce_int(value)
        if number is None or number < 0 or (positive and number == 0):
            return default
        return number
