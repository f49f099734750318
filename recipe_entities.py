"""
HTML entity decoding and text cleanup for extracted fragments
"""

import re
from html.entities import html5

# Applied first, in this order. Double-escaped forms come first so
# "&amp;#39;" ends up as an apostrophe rather than a literal "&#39;".
NAMED_ENTITIES = [
    ('&amp;#32;', ' '),
    ('&#32;', ' '),
    ('&amp;#39;', "'"),
    ('&#39;', "'"),
    ('&amp;#x27;', "'"),
    ('&#x27;', "'"),
    ('&amp;', '&'),
    ('&lt;', '<'),
    ('&gt;', '>'),
    ('&quot;', '"'),
    ('&nbsp;', ' '),
    ('&apos;', "'"),
]

# Only semicolon-terminated names; "&region=us" in a URL is not an entity
NAMED_ENTITY_RE = re.compile(r'&([A-Za-z][A-Za-z0-9]*);')
DECIMAL_ENTITY_RE = re.compile(r'&#(\d+);')
HEX_ENTITY_RE = re.compile(r'&#[xX]([0-9a-fA-F]+);')
TAG_RE = re.compile(r'<[^>]*>')
SCRIPT_STYLE_RE = re.compile(r'<(script|style|noscript)\b[^>]*>[\s\S]*?</\1\s*>', re.IGNORECASE)
WHITESPACE_RE = re.compile(r'\s+')


def _decode_codepoint(match: re.Match, base: int) -> str:
    try:
        return chr(int(match.group(1), base))
    except (ValueError, OverflowError):
        return match.group(0)


def _decode_named(match: re.Match) -> str:
    return html5.get(match.group(1) + ';', match.group(0))


def decode_entities(text):
    """Decode named, decimal and hex HTML entities.

    Anything that is not a non-empty string is returned as is. Entities that
    are unknown, lack their semicolon, or do not map to a valid code point
    are left in place.
    """
    if not text or not isinstance(text, str):
        return text

    decoded = text
    for entity, replacement in NAMED_ENTITIES:
        decoded = decoded.replace(entity, replacement)
    decoded = NAMED_ENTITY_RE.sub(_decode_named, decoded)

    decoded = DECIMAL_ENTITY_RE.sub(lambda m: _decode_codepoint(m, 10), decoded)
    decoded = HEX_ENTITY_RE.sub(lambda m: _decode_codepoint(m, 16), decoded)
    return decoded.replace('\u00a0', ' ')


def strip_tags(text: str) -> str:
    """Replace every HTML tag with a space."""
    if not text:
        return ''
    return TAG_RE.sub(' ', text)


def collapse_whitespace(text: str) -> str:
    return WHITESPACE_RE.sub(' ', text).strip()


def clean_extracted_text(text) -> str:
    """Strip tags, normalize whitespace and decode entities."""
    if not text or not isinstance(text, str):
        return ''
    cleaned = decode_entities(collapse_whitespace(strip_tags(text)))
    # Decoding may surface tags that were entity-escaped in the source
    if '<' in cleaned and '>' in cleaned:
        cleaned = strip_tags(cleaned)
    return collapse_whitespace(cleaned)


def visible_text_length(html_content: str) -> int:
    """Length of the page text once scripts, styles and tags are removed."""
    if not html_content:
        return 0
    without_code = SCRIPT_STYLE_RE.sub(' ', html_content)
    return len(collapse_whitespace(strip_tags(without_code)))
