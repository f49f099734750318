#!/usr/bin/env python3
"""
Recipe API - Flask backend for the recipe extraction pipeline
"""

import logging
import os

from flask import Flask, jsonify, request
from flask_cors import CORS

from recipe_config import ExtractionSettings, api_key_configured
from recipe_errors import ApiError, ConfigurationError, ExtractionError, NetworkError, RecipeError, ValidationError
from recipe_models import SOURCE_OCR
from recipe_ocr import image_to_data_url, validate_image_upload
from recipe_tool import RecipeScraper

logger = logging.getLogger(__name__)

# Anthropic API key from environment
ANTHROPIC_API_KEY = os.environ.get('ANTHROPIC_API_KEY', '')

STATUS_CODES = [
    (ValidationError, 400),
    (ConfigurationError, 500),
    (NetworkError, 502),
    (ApiError, 502),
    (ExtractionError, 422),
]


def status_for(error: RecipeError) -> int:
    for error_type, status in STATUS_CODES:
        if isinstance(error, error_type):
            return status
    return 500


def create_app(scraper: RecipeScraper = None) -> Flask:
    settings = ExtractionSettings.from_env()
    app = Flask(__name__)
    CORS(app)  # Allow the browser front end to call this
    app.config['MAX_CONTENT_LENGTH'] = settings.max_image_bytes * 5
    app.extensions['recipe_scraper'] = scraper or RecipeScraper(settings)

    def get_scraper() -> RecipeScraper:
        return app.extensions['recipe_scraper']

    @app.errorhandler(RecipeError)
    def handle_recipe_error(error):
        status = status_for(error)
        logger.warning("%s (%d): %s", type(error).__name__, status, error.message)
        return jsonify(error.to_dict()), status

    @app.route('/healthz', methods=['GET'])
    def healthz():
        return jsonify({'status': 'ok', 'ocr': api_key_configured(ANTHROPIC_API_KEY)})

    @app.route('/api/scrape', methods=['POST'])
    def scrape_recipe():
        """Extract a recipe from a URL."""
        data = request.get_json(silent=True) or {}
        url = data.get('url')

        if not url:
            raise ValidationError('No URL provided')

        recipe = get_scraper().extract_recipe(url)
        return jsonify(recipe.to_dict())

    @app.route('/api/extract-text', methods=['POST'])
    def extract_from_text():
        """Structure pasted OCR or PDF text into a recipe."""
        data = request.get_json(silent=True) or {}
        text = data.get('text')
        source_type = data.get('sourceType') or SOURCE_OCR

        if not text or not str(text).strip():
            raise ValidationError('No text provided')

        recipe = get_scraper().extract_from_text(str(text), source_type=source_type)
        return jsonify(recipe.to_dict())

    @app.route('/api/extract-image', methods=['POST'])
    def extract_from_images():
        """Extract a recipe from one or more uploaded photos, in upload order."""
        images = request.files.getlist('images') or request.files.getlist('image')
        if not images:
            raise ValidationError('No image provided')

        data_urls = []
        for image_file in images:
            image_data = image_file.read()
            media_type = validate_image_upload(image_file.content_type, len(image_data), settings)
            data_urls.append(image_to_data_url(image_data, media_type))

        recipe = get_scraper().extract_from_images(data_urls)
        return jsonify(recipe.to_dict())

    return app


if __name__ == '__main__':
    logging.basicConfig(level=logging.INFO, format='%(asctime)s %(levelname)s %(name)s: %(message)s')
    if not api_key_configured(ANTHROPIC_API_KEY):
        print("⚠️  Warning: ANTHROPIC_API_KEY not set. Photo and text extraction won't work.")
        print("   Run: export ANTHROPIC_API_KEY=your-key")
    port = int(os.environ.get('PORT', 5001))
    print(f"🍳 Recipe API running at http://localhost:{port}")
    create_app().run(debug=True, port=port, host='0.0.0.0')
