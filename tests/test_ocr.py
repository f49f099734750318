import json
from types import SimpleNamespace

import anthropic
import httpx
import pytest

import recipe_ocr
from recipe_errors import ApiError, ConfigurationError, ExtractionError, ValidationError
from recipe_models import SOURCE_PDF, Ingredient
from recipe_ocr import (
    AnthropicVisionClient,
    RecipeSynthesizer,
    extract_json_object,
    image_to_data_url,
    validate_image_upload,
)


class DummyClient:
    def __init__(self, reply="", pages=None):
        self.reply = reply
        self.pages = list(pages or [])
        self.prompts = []
        self.images = []

    def complete(self, prompt):
        self.prompts.append(prompt)
        return self.reply

    def extract_text(self, image_data_url):
        self.images.append(image_data_url)
        return self.pages.pop(0)


REPLY = {
    "title": "Grandma's Biscuits",
    "ingredients": [
        {"amount": "2", "unit": "cups", "item": "flour"},
        "1 tbsp baking powder",
        {"amount": "", "unit": "", "item": ""},
    ],
    "steps": ["Mix everything.", "Bake at 450F for 12 minutes."],
    "servings": 8,
    "prepTime": None,
    "cookTime": "12",
}


def test_synthesize_structured_reply():
    client = DummyClient(reply=json.dumps(REPLY))
    recipe = RecipeSynthesizer(client).synthesize("raw card text")

    assert recipe.title == "Grandma's Biscuits"
    assert recipe.ingredients == [
        Ingredient("2", "cups", "flour"),
        Ingredient("1", "tbsp", "baking powder"),
    ]
    assert recipe.steps == ["Mix everything.", "Bake at 450F for 12 minutes."]
    assert recipe.servings == 8
    assert recipe.prep_time == 15
    assert recipe.cook_time == 12
    assert recipe.url is None
    assert recipe.recipe_id.startswith("ocr_")
    assert client.prompts[0].endswith("raw card text")


def test_synthesize_tolerates_code_fence_and_prose():
    reply = "Here you go!\n```json\n" + json.dumps(REPLY) + "\n```\nEnjoy."
    recipe = RecipeSynthesizer(DummyClient(reply=reply)).synthesize("text")
    assert recipe.title == "Grandma's Biscuits"


def test_synthesize_falls_back_to_raw_text():
    recipe = RecipeSynthesizer(DummyClient(reply="Sorry, I can't read that.")).synthesize("1 cup oats\nstir")

    assert recipe.title == "Recipe from Photo"
    assert recipe.ingredients == []
    assert recipe.steps == ["Original text from image:", "1 cup oats\nstir"]
    assert (recipe.servings, recipe.prep_time, recipe.cook_time) == (4, 15, 30)


def test_synthesize_empty_lists_keep_raw_text():
    reply = json.dumps({"title": "X", "ingredients": [], "steps": []})
    recipe = RecipeSynthesizer(DummyClient(reply=reply)).synthesize("raw")
    assert recipe.steps == ["Original text from image:", "raw"]


def test_each_recipe_gets_a_fresh_id():
    synthesizer = RecipeSynthesizer(DummyClient(reply=json.dumps(REPLY)))
    assert synthesizer.synthesize("a").recipe_id != synthesizer.synthesize("a").recipe_id


def test_synthesize_images_in_page_order():
    client = DummyClient(reply=json.dumps(REPLY), pages=["First page", "  ", "Third page"])
    RecipeSynthesizer(client).synthesize_images(["data:image/png;base64,AA", "data:image/png;base64,BB", "data:image/png;base64,CC"])

    prompt = client.prompts[0]
    assert client.images == ["data:image/png;base64,AA", "data:image/png;base64,BB", "data:image/png;base64,CC"]
    assert "--- Page 1 ---\nFirst page" in prompt
    assert "--- Page 2 ---" not in prompt
    assert prompt.index("--- Page 1 ---") < prompt.index("--- Page 3 ---\nThird page")


def test_synthesize_images_without_text():
    client = DummyClient(pages=["", ""])
    with pytest.raises(ExtractionError):
        RecipeSynthesizer(client).synthesize_images(["data:image/png;base64,AA", "data:image/png;base64,BB"])
    assert client.prompts == []


def test_pdf_text_too_short():
    with pytest.raises(ExtractionError):
        RecipeSynthesizer(DummyClient()).synthesize_pdf_text("Page 1\n\n  short  ")


def test_pdf_text():
    recipe = RecipeSynthesizer(DummyClient(reply="nope")).synthesize_pdf_text("x" * 60)
    assert recipe.source_type == SOURCE_PDF
    assert recipe.title == "Recipe from PDF"
    assert recipe.recipe_id.startswith("pdf_")


def test_extract_json_object():
    assert extract_json_object('{"a": 1}') == {"a": 1}
    assert extract_json_object('Sure: {"a": 1} done') == {"a": 1}
    assert extract_json_object("[1, 2]") is None
    assert extract_json_object("") is None


def test_image_data_url():
    assert image_to_data_url(b"abc", "image/png") == "data:image/png;base64,YWJj"


def test_validate_image_upload():
    assert validate_image_upload("image/jpg", 10) == "image/jpeg"
    assert validate_image_upload("image/webp", 10) == "image/webp"
    with pytest.raises(ValidationError):
        validate_image_upload("image/gif", 10)
    with pytest.raises(ValidationError):
        validate_image_upload("image/png", 11 * 1024 * 1024)
    with pytest.raises(ValidationError):
        validate_image_upload("image/png", 0)


@pytest.mark.parametrize("key", ["", "your-key", "YOUR_ANTHROPIC_API_KEY_HERE"])
def test_placeholder_key_fails_before_network(monkeypatch, key):
    def fail(**kwargs):
        raise AssertionError("client should not be created")

    monkeypatch.setattr(recipe_ocr.anthropic, "Anthropic", fail)
    client = AnthropicVisionClient(api_key=key)

    with pytest.raises(ConfigurationError):
        client.complete("hello")
    with pytest.raises(ConfigurationError):
        client.extract_text("data:image/png;base64,AA")


class DummyMessages:
    def __init__(self, text="", error=None):
        self.text = text
        self.error = error
        self.calls = []

    def create(self, **kwargs):
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        return SimpleNamespace(content=[SimpleNamespace(type="text", text=self.text)])


def _client_with(monkeypatch, messages):
    monkeypatch.setattr(recipe_ocr.anthropic, "Anthropic", lambda api_key: SimpleNamespace(messages=messages))
    return AnthropicVisionClient(api_key="sk-test")


def test_extract_text_sends_base64_image(monkeypatch):
    messages = DummyMessages(text="  1 cup rice  ")
    client = _client_with(monkeypatch, messages)

    assert client.extract_text("data:image/jpeg;base64,QUJD") == "1 cup rice"
    content = messages.calls[0]["messages"][0]["content"]
    assert content[0]["source"] == {"type": "base64", "media_type": "image/jpeg", "data": "QUJD"}
    assert messages.calls[0]["model"] == "claude-sonnet-4-20250514"


def test_extract_text_rejects_non_data_url(monkeypatch):
    client = _client_with(monkeypatch, DummyMessages(text="x"))
    with pytest.raises(ValidationError):
        client.extract_text("https://example.com/photo.jpg")


def test_empty_ocr_reply(monkeypatch):
    client = _client_with(monkeypatch, DummyMessages(text=""))
    with pytest.raises(ExtractionError):
        client.extract_text("data:image/png;base64,AA")


def test_provider_error_becomes_api_error(monkeypatch):
    error = anthropic.APIConnectionError(request=httpx.Request("POST", "https://api.anthropic.com/v1/messages"))
    client = _client_with(monkeypatch, DummyMessages(error=error))

    with pytest.raises(ApiError) as excinfo:
        client.complete("hello")
    assert not isinstance(excinfo.value, ConfigurationError)
