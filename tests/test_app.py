import io

import pytest

from app import create_app
from recipe_errors import ConfigurationError, ExtractionError, NetworkError
from recipe_models import SOURCE_PDF, Ingredient, Recipe

RECIPE = Recipe(
    title="Toast",
    ingredients=[Ingredient("1", "slice", "bread")],
    steps=["Toast the bread."],
    url="https://example.com/toast",
    recipe_id="https://example.com/toast",
)


class DummyScraper:
    def __init__(self, error=None):
        self.error = error
        self.calls = []

    def _respond(self, name, *args, **kwargs):
        self.calls.append((name, args, kwargs))
        if self.error is not None:
            raise self.error
        return RECIPE

    def extract_recipe(self, url):
        return self._respond("extract_recipe", url)

    def extract_from_text(self, text, source_type):
        return self._respond("extract_from_text", text, source_type=source_type)

    def extract_from_images(self, data_urls):
        return self._respond("extract_from_images", data_urls)


def _client(scraper):
    app = create_app(scraper)
    app.config["TESTING"] = True
    return app.test_client()


def test_scrape_returns_recipe_json():
    scraper = DummyScraper()
    response = _client(scraper).post("/api/scrape", json={"url": "https://example.com/toast"})

    assert response.status_code == 200
    body = response.get_json()
    assert body["title"] == "Toast"
    assert body["ingredients"] == [{"amount": "1", "unit": "slice", "item": "bread"}]
    assert body["prepTime"] == 15
    assert body["recipeId"] == "https://example.com/toast"
    assert scraper.calls == [("extract_recipe", ("https://example.com/toast",), {})]


def test_scrape_without_url():
    response = _client(DummyScraper()).post("/api/scrape", json={})

    assert response.status_code == 400
    assert response.get_json() == {"error": "No URL provided", "type": "ValidationError"}


@pytest.mark.parametrize("error, status", [
    (NetworkError("Failed to fetch webpage: HTTP 500", status=500), 502),
    (ExtractionError("Nothing usable", hint="Try the photo feature"), 422),
    (ConfigurationError("ANTHROPIC_API_KEY not set"), 500),
])
def test_errors_mapped_to_status(error, status):
    response = _client(DummyScraper(error)).post("/api/scrape", json={"url": "https://example.com"})

    assert response.status_code == status
    body = response.get_json()
    assert body["error"] == error.message
    assert body["type"] == type(error).__name__
    assert body.get("hint") == error.hint


def test_extract_text_passes_source_type():
    scraper = DummyScraper()
    response = _client(scraper).post("/api/extract-text", json={"text": "recipe text", "sourceType": SOURCE_PDF})

    assert response.status_code == 200
    assert scraper.calls == [("extract_from_text", ("recipe text",), {"source_type": SOURCE_PDF})]


def test_extract_text_requires_text():
    response = _client(DummyScraper()).post("/api/extract-text", json={"text": "  "})
    assert response.status_code == 400


def test_extract_images_in_upload_order():
    scraper = DummyScraper()
    data = {"images": [
        (io.BytesIO(b"first"), "1.png", "image/png"),
        (io.BytesIO(b"second"), "2.jpg", "image/jpeg"),
    ]}
    response = _client(scraper).post("/api/extract-image", data=data, content_type="multipart/form-data")

    assert response.status_code == 200
    (name, (data_urls,), _), = scraper.calls
    assert data_urls == ["data:image/png;base64,Zmlyc3Q=", "data:image/jpeg;base64,c2Vjb25k"]


def test_extract_single_image_field():
    scraper = DummyScraper()
    data = {"image": (io.BytesIO(b"x"), "card.webp", "image/webp")}
    response = _client(scraper).post("/api/extract-image", data=data, content_type="multipart/form-data")

    assert response.status_code == 200
    assert len(scraper.calls) == 1


def test_extract_image_rejects_unsupported_type():
    scraper = DummyScraper()
    data = {"image": (io.BytesIO(b"GIF89a"), "anim.gif", "image/gif")}
    response = _client(scraper).post("/api/extract-image", data=data, content_type="multipart/form-data")

    assert response.status_code == 400
    assert scraper.calls == []


def test_extract_image_without_files():
    response = _client(DummyScraper()).post("/api/extract-image", data={}, content_type="multipart/form-data")
    assert response.status_code == 400


def test_healthz():
    response = _client(DummyScraper()).get("/healthz")
    assert response.status_code == 200
    assert response.get_json()["status"] == "ok"
