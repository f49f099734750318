"""
Recipe data model shared by the extractors, validator and synthesizer
"""

import json
import secrets
import string
import time
from dataclasses import dataclass, field
from typing import List, Optional

SOURCE_URL = "url"
SOURCE_OCR = "ocr"
SOURCE_PDF = "pdf"
SOURCE_TYPES = (SOURCE_URL, SOURCE_OCR, SOURCE_PDF)

_ID_ALPHABET = string.ascii_lowercase + string.digits


@dataclass(frozen=True)
class Ingredient:
    """A single ingredient line split into amount, unit and item."""
    amount: str = ""
    unit: str = ""
    item: str = ""

    def to_dict(self) -> dict:
        return {"amount": self.amount, "unit": self.unit, "item": self.item}

    def __str__(self) -> str:
        return " ".join(part for part in (self.amount, self.unit, self.item) if part)


@dataclass
class CandidateRecipe:
    """A recipe being filled in by successive extraction strategies.

    ``None`` means the field has not been found yet. Strategies only fill
    fields that are still ``None``.
    """
    title: Optional[str] = None
    servings: Optional[int] = None
    prep_time: Optional[int] = None
    cook_time: Optional[int] = None
    ingredients: Optional[List[Ingredient]] = None
    steps: Optional[List[str]] = None
    image_url: Optional[str] = None

    def merge(self, other: "CandidateRecipe") -> List[str]:
        """Copy fields from ``other`` into fields that are still absent.

        Returns the names of the fields that were filled.
        """
        filled = []
        for name in ("title", "servings", "prep_time", "cook_time", "ingredients", "steps", "image_url"):
            if getattr(self, name) is None and getattr(other, name) is not None:
                setattr(self, name, getattr(other, name))
                filled.append(name)
        return filled

    def missing(self) -> List[str]:
        return [name for name in ("title", "ingredients", "steps", "image_url") if getattr(self, name) is None]

    @property
    def is_complete(self) -> bool:
        return bool(self.ingredients) and bool(self.steps)


@dataclass
class Recipe:
    """Represents a complete recipe."""
    title: str
    ingredients: List[Ingredient] = field(default_factory=list)
    steps: List[str] = field(default_factory=list)
    servings: int = 4
    prep_time: int = 15
    cook_time: int = 30
    url: Optional[str] = None
    recipe_id: Optional[str] = None
    image_url: Optional[str] = None
    source_type: str = SOURCE_URL

    def to_dict(self) -> dict:
        """Convert recipe to the canonical JSON shape."""
        return {
            "title": self.title,
            "ingredients": [ing.to_dict() for ing in self.ingredients],
            "steps": list(self.steps),
            "servings": self.servings,
            "prepTime": self.prep_time,
            "cookTime": self.cook_time,
            "imageUrl": self.image_url,
            "recipeId": self.recipe_id,
            "url": self.url,
            "sourceType": self.source_type,
        }

    def to_json(self, indent: int = 2) -> str:
        """Convert recipe to JSON string."""
        return json.dumps(self.to_dict(), indent=indent)

    def __str__(self) -> str:
        lines = [f"{'=' * 50}", f"{self.title}", f"{'=' * 50}"]

        lines.append(f"Servings: {self.servings}")
        lines.append(f"Prep Time: {self.prep_time} min")
        lines.append(f"Cook Time: {self.cook_time} min")

        lines.append(f"\n{'─' * 30}")
        lines.append("INGREDIENTS")
        lines.append(f"{'─' * 30}")
        for ing in self.ingredients:
            lines.append(f"  • {ing}")

        lines.append(f"\n{'─' * 30}")
        lines.append("INSTRUCTIONS")
        lines.append(f"{'─' * 30}")
        for i, step in enumerate(self.steps, 1):
            lines.append(f"  {i}. {step}")

        if self.url:
            lines.append(f"\nSource: {self.url}")
        if self.image_url:
            lines.append(f"Image: {self.image_url}")

        return "\n".join(lines)


def generate_recipe_id(source_type: str = SOURCE_OCR) -> str:
    """Unique id for recipes that have no URL, e.g. ``ocr_1700000000000_k3j9x0a``."""
    suffix = "".join(secrets.choice(_ID_ALPHABET) for _ in range(7))
    return f"{source_type}_{int(time.time() * 1000)}_{suffix}"
