#!/usr/bin/env python3
"""
Recipe Tool CLI - Interactive command-line interface
"""

import logging
import mimetypes
import os
import sys
from typing import Optional

from recipe_config import ExtractionSettings
from recipe_errors import RecipeError
from recipe_models import Recipe
from recipe_ocr import image_to_data_url, validate_image_upload
from recipe_tool import RecipeScraper


def print_menu():
    """Print the main menu."""
    print("\n" + "─" * 40)
    print("RECIPE TOOL - OPTIONS")
    print("─" * 40)
    print("  1. Load recipe from URL")
    print("  2. Load recipe from photo(s)")
    print("  3. Show current recipe")
    print("  4. Export to JSON")
    print("  0. Exit")
    print("─" * 40)


def print_error(error: RecipeError):
    print(f"\n❌ {error.message}")
    if error.hint:
        print(f"   {error.hint}")


def load_url(scraper: RecipeScraper, url: str) -> Optional[Recipe]:
    print(f"\nFetching recipe from: {url}")
    try:
        recipe = scraper.extract_recipe(url)
    except RecipeError as e:
        print_error(e)
        return None
    print("\n✅ Recipe extracted successfully!\n")
    print(recipe)
    return recipe


def read_photo(path: str, settings: ExtractionSettings) -> str:
    """Read an image file into a data URL, checking its type and size."""
    media_type, _ = mimetypes.guess_type(path)
    with open(path, 'rb') as f:
        data = f.read()
    media_type = validate_image_upload(media_type, len(data), settings)
    return image_to_data_url(data, media_type)


def load_photos(scraper: RecipeScraper, paths) -> Optional[Recipe]:
    data_urls = []
    for path in paths:
        path = os.path.expanduser(path)
        try:
            data_urls.append(read_photo(path, scraper.settings))
        except OSError as e:
            print(f"\n❌ Could not read {path}: {e.strerror}")
            return None
        except RecipeError as e:
            print_error(e)
            return None

    print(f"\nReading {len(data_urls)} photo(s)...")
    try:
        recipe = scraper.extract_from_images(data_urls)
    except RecipeError as e:
        print_error(e)
        return None
    print("\n✅ Recipe extracted successfully!\n")
    print(recipe)
    return recipe


def export_json(recipe: Recipe, filename: str) -> str:
    if not filename:
        filename = "recipe.json"
    if not filename.endswith('.json'):
        filename += '.json'
    with open(filename, 'w') as f:
        f.write(recipe.to_json())
    return filename


def main():
    logging.basicConfig(level=logging.WARNING, format="%(levelname)s %(name)s: %(message)s")
    scraper = RecipeScraper(ExtractionSettings.from_env())
    current_recipe = None

    print("=" * 50)
    print("🍳 RECIPE TOOL")
    print("=" * 50)
    print("\nLoad a recipe from a URL or from photos of a recipe card.")
    print("Tip: Works best with sites that use Schema.org markup")
    print("     (most major recipe sites like AllRecipes, BBC Food, etc.)")

    while True:
        print_menu()
        choice = input("Choose option: ").strip().lower()

        if choice in ('0', 'q', 'quit', 'exit'):
            print("Goodbye!")
            break
        elif choice == '1':
            url = input("\nEnter recipe URL: ").strip()
            recipe = load_url(scraper, url)
            if recipe is not None:
                current_recipe = recipe
        elif choice == '2':
            raw = input("\nEnter photo path(s), separated by commas: ").strip()
            paths = [p.strip() for p in raw.split(',') if p.strip()]
            if not paths:
                print("No photos given.")
                continue
            recipe = load_photos(scraper, paths)
            if recipe is not None:
                current_recipe = recipe
        elif choice == '3':
            if current_recipe is None:
                print("No recipe loaded yet.")
            else:
                print("\n" + str(current_recipe))
        elif choice == '4':
            if current_recipe is None:
                print("No recipe loaded yet.")
                continue
            filename = input("Enter filename (default: recipe.json): ").strip()
            print(f"\n✅ Saved to {export_json(current_recipe, filename)}")
        else:
            print("Invalid option. Please choose 0-4.")


if __name__ == "__main__":
    sys.exit(main())
