import pytest

from recipe_entities import clean_extracted_text, decode_entities, strip_tags, visible_text_length


def test_decodes_named_entities():
    assert decode_entities("Salt &amp; pepper") == "Salt & pepper"
    assert decode_entities("&lt;b&gt;") == "<b>"
    assert decode_entities("&quot;quoted&quot;") == '"quoted"'
    assert decode_entities("a&nbsp;b") == "a b"


def test_decodes_double_escaped_apostrophe():
    assert decode_entities("Mom&amp;#39;s cookies") == "Mom's cookies"


def test_decodes_numeric_entities():
    assert decode_entities("Caf&#233;") == "Café"
    assert decode_entities("Caf&#xE9;") == "Café"
    assert decode_entities("It&#39;s") == "It's"


def test_bare_ampersand_left_alone():
    assert decode_entities("AT&T mac & cheese") == "AT&T mac & cheese"


def test_non_string_and_empty_returned_unchanged():
    assert decode_entities(None) is None
    assert decode_entities("") == ""
    assert decode_entities(42) == 42


@pytest.mark.parametrize("text", [
    "2 cups flour, sifted",
    "Salt&pepper&not much else",
    "https://cdn.x.test/a.jpg?w=600&region=us&notes=1",
    "Step #2; stir & serve",
    "AT&T mac & cheese",
])
def test_decode_is_idempotent_on_plain_text(text):
    assert decode_entities(decode_entities(text)) == decode_entities(text) == text


def test_entity_names_without_semicolon_left_alone():
    assert decode_entities("Salt&pepper&not much else") == "Salt&pepper&not much else"
    assert decode_entities("?a=1&copy=2&lang=en") == "?a=1&copy=2&lang=en"
    assert decode_entities("&copy; 2024 &hellip;") == "© 2024 …"


def test_strip_tags_replaces_tags_with_space():
    assert strip_tags("<b>1</b>cup") == " 1 cup"


def test_clean_extracted_text_collapses_and_decodes():
    assert clean_extracted_text("  <span>1 cup</span>\n\n sugar &amp; spice ") == "1 cup sugar & spice"


def test_clean_extracted_text_strips_escaped_markup():
    assert clean_extracted_text("&lt;strong&gt;Butter&lt;/strong&gt;") == "Butter"


def test_visible_text_length_ignores_scripts_and_styles():
    html = "<html><head><style>body{color:red}</style><script>var x = 1;</script></head><body><p>Hello</p></body></html>"
    assert visible_text_length(html) == len("Hello")
