import pytest

from recipe_config import ExtractionSettings
from recipe_models import CandidateRecipe, Ingredient
from recipe_patterns import (
    extract_by_pattern,
    extract_image,
    extract_ingredient_texts,
    extract_step_texts,
    extract_title,
    is_boilerplate,
)
from recipe_trace import TraceRecorder

SETTINGS = ExtractionSettings()


@pytest.mark.parametrize("text", [
    "Advertisement",
    "Jump to Recipe",
    "12 Comments",
    "Nutrition Facts",
    "x" * 600,
])
def test_boilerplate(text):
    assert is_boilerplate(text)


@pytest.mark.parametrize("text", [
    "2 tbsp olive oil",
    "Pinch of salt",
    "Pineapple chunks",
    "Savoy cabbage, shredded",
])
def test_not_boilerplate(text):
    assert not is_boilerplate(text)


def test_sugar_scenario_three_ingredients_two_steps():
    html = (
        "<html><body><h1>Sugar Syrup</h1>"
        + '<li class="ingredient-item">1 cup sugar</li>' * 3
        + '<li class="instruction">Preheat oven.</li>' * 2
        + "</body></html>"
    )
    candidate = CandidateRecipe()
    trace = TraceRecorder()

    filled = extract_by_pattern(html, candidate, SETTINGS, trace)

    assert filled == ["title", "ingredients", "steps"]
    assert candidate.title == "Sugar Syrup"
    assert candidate.ingredients == [Ingredient("1", "cup", "sugar")] * 3
    assert candidate.steps == ["Preheat oven.", "Preheat oven."]
    assert trace.winning_strategy("ingredients") == "generic"
    assert trace.winning_strategy("steps") == "generic-relaxed"


def test_existing_fields_are_not_overwritten():
    html = '<h1>Other</h1><li class="ingredient">2 cups rice</li>'
    candidate = CandidateRecipe(title="Mine", ingredients=[Ingredient(item="water")])

    filled = extract_by_pattern(html, candidate, SETTINGS)

    assert "title" not in filled and "ingredients" not in filled
    assert candidate.title == "Mine"
    assert candidate.ingredients == [Ingredient(item="water")]


def test_cascade_stops_after_confident_family():
    html = (
        '<li class="ingredient">1 cup rice</li>' * 3
        + '<span class="o-Ingredients__a-Ingredient">1 tsp salt</span>'
    )
    trace = TraceRecorder()
    texts = extract_ingredient_texts(html, SETTINGS, trace)

    assert texts == ["1 cup rice"] * 3
    assert "food-network" not in [e.strategy for e in trace.events]


def test_families_accumulate_below_threshold():
    html = (
        '<li class="ingredient">1 cup rice</li>'
        '<span class="o-Ingredients__a-Ingredient">1 tsp salt</span>'
        '<span class="o-Ingredients__a-Ingredient">2 cups water</span>'
    )
    assert extract_ingredient_texts(html, SETTINGS) == ["1 cup rice", "1 tsp salt", "2 cups water"]


def test_same_element_matched_by_two_patterns_counted_once():
    html = '<li class="ingredient" itemprop="recipeIngredient">1 cup oats</li>'
    assert extract_ingredient_texts(html, SETTINGS) == ["1 cup oats"]


def test_boilerplate_items_filtered():
    html = (
        '<li class="ingredient">Advertisement</li>'
        '<li class="ingredient">1 cup milk</li>'
    )
    assert extract_ingredient_texts(html, SETTINGS) == ["1 cup milk"]


def test_ingredient_list_fallback():
    html = '<ul class="recipe-ingredients"><li>1 cup flour</li><li>2 eggs</li></ul>'
    trace = TraceRecorder()
    assert extract_ingredient_texts(html, SETTINGS, trace) == ["1 cup flour", "2 eggs"]
    assert trace.winning_strategy("ingredients") == "ingredient-lists"


def test_blog_heading_fallback():
    html = """
    <article>
      <h2>What you need</h2>
      <h3>Ingredients</h3>
      <p>2 cups chickpeas</p>
      <p>3 tbsp tahini</p>
      <p>A lovely dip for any table.</p>
      <h3>Instructions</h3>
      <p>Blend the chickpeas and tahini until completely smooth.</p>
      <p>Season to taste and drizzle with olive oil before serving.</p>
    </article>
    """
    assert extract_ingredient_texts(html, SETTINGS) == ["2 cups chickpeas", "3 tbsp tahini"]
    assert extract_step_texts(html, SETTINGS) == [
        "Blend the chickpeas and tahini until completely smooth.",
        "Season to taste and drizzle with olive oil before serving.",
    ]


def test_step_list_fallback():
    html = """
    <ol class="recipe-directions">
      <li>Bring a large pot of water to a boil.</li>
      <li>Cook the pasta until al dente.</li>
    </ol>
    """
    trace = TraceRecorder()
    steps = extract_step_texts(html, SETTINGS, trace)
    assert steps == ["Bring a large pot of water to a boil.", "Cook the pasta until al dente."]
    assert trace.winning_strategy("steps") == "step-lists"


def test_numbered_paragraph_fallback():
    html = "<p>Step 1: Toast the bread on both sides.</p><p>Step 2: Spread with butter and jam.</p>"
    assert extract_step_texts(html, SETTINGS) == [
        "Toast the bread on both sides.",
        "Spread with butter and jam.",
    ]


def test_custom_thresholds():
    settings = ExtractionSettings(ingredient_confidence_threshold=0)
    html = (
        '<li class="ingredient">1 cup rice</li>'
        '<span class="o-Ingredients__a-Ingredient">1 tsp salt</span>'
    )
    assert extract_ingredient_texts(html, settings) == ["1 cup rice"]


@pytest.mark.parametrize("html, expected", [
    ('<h1 class="recipe-title">Best Chili</h1><h1>Site</h1>', "Best Chili"),
    ("<h1>Banana Bread &amp; Butter</h1>", "Banana Bread & Butter"),
    ("<title>Recipe - Fish Tacos | Example Kitchen</title>", "Fish Tacos"),
])
def test_title(html, expected):
    assert extract_title(html) == expected


def test_title_missing():
    assert extract_title("<p>no title</p>") is None


@pytest.mark.parametrize("html, expected", [
    ('<meta property="og:image" content="https://x.test/og.jpg">', "https://x.test/og.jpg"),
    ('<meta content="https://x.test/rev.jpg" property="og:image">', "https://x.test/rev.jpg"),
    ('<img class="recipe-photo" src="/img/a.jpg">', "/img/a.jpg"),
    ('<source srcset="https://x.test/s.webp 1x, https://x.test/s2.webp 2x" type="image/webp">', "https://x.test/s.webp"),
])
def test_image(html, expected):
    assert extract_image(html) == expected


def test_image_url_query_string_kept_intact():
    html = '<meta property="og:image" content="https://cdn.x.test/a.jpg?w=600&region=us&notes=1">'
    assert extract_image(html) == "https://cdn.x.test/a.jpg?w=600&region=us&notes=1"
