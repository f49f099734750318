"""
Tunable settings for recipe extraction
"""

import os
from dataclasses import dataclass, fields


# Values people leave in .env files instead of a real key
PLACEHOLDER_API_KEYS = {
    "",
    "your-key",
    "YOUR_ANTHROPIC_API_KEY_HERE",
    "CONFIGURE_YOUR_CLAUDE_KEY",
}

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)


@dataclass(frozen=True)
class ExtractionSettings:
    """Thresholds, defaults and limits used across the pipeline."""

    # Pattern cascade: stop once more than this many items were collected
    ingredient_confidence_threshold: int = 2
    step_confidence_threshold: int = 1

    # Minimum cleaned length (exclusive) for a fragment to be accepted
    min_ingredient_length: int = 2
    min_step_length: int = 15
    relaxed_step_min_length: int = 5
    blog_step_paragraph_min_length: int = 30
    boilerplate_max_length: int = 500

    # Below this much visible text the page is probably rendered by JavaScript
    minimal_content_length: int = 1000

    default_servings: int = 4
    default_prep_time: int = 15
    default_cook_time: int = 30

    max_url_length: int = 2000
    min_title_length: int = 1
    max_title_length: int = 200
    min_servings: int = 1
    max_servings: int = 100
    max_time_minutes: int = 1440
    min_ingredients: int = 1
    min_steps: int = 1

    fetch_timeout: float = 30.0
    user_agent: str = DEFAULT_USER_AGENT

    anthropic_model: str = "claude-sonnet-4-20250514"
    anthropic_max_tokens: int = 1500
    max_image_bytes: int = 10 * 1024 * 1024
    min_pdf_text_length: int = 50

    @classmethod
    def from_env(cls, environ=None) -> "ExtractionSettings":
        """Build settings, overriding any field from a RECIPE_<FIELD> variable."""
        environ = os.environ if environ is None else environ
        overrides = {}
        for f in fields(cls):
            raw = environ.get(f"RECIPE_{f.name.upper()}")
            if raw is None:
                continue
            default = getattr(cls, f.name)
            if isinstance(default, int):
                overrides[f.name] = int(raw)
            elif isinstance(default, float):
                overrides[f.name] = float(raw)
            else:
                overrides[f.name] = raw
        return cls(**overrides)


def api_key_configured(api_key) -> bool:
    return bool(api_key) and api_key.strip() not in PLACEHOLDER_API_KEYS
