"""
Category Schema Configuration
Per-category field requirements, question templates and routing, loaded from data.
"""
import json
from importlib import resources
from pathlib import Path
from typing import Dict, List, Optional
from pydantic import BaseModel, Field, ValidationError, model_validator

from support_engine.models.conversation import Category


class SchemaConfigurationError(Exception):
    """Raised when a category schema file is missing or invalid."""
    pass


class CategorySchema(BaseModel):
    """Field requirements and routing for one conversation category."""
    label: str
    channel: str = Field(..., description="Primary notification channel for hand-offs")
    essential: List[str] = Field(..., min_length=1)
    optional: List[str] = Field(default_factory=list)
    extra_fields: List[str] = Field(
        default_factory=list,
        description="Fields extracted opportunistically but never asked for"
    )
    priority_order: List[str]
    question_templates: Dict[str, str] = Field(default_factory=dict)

    @model_validator(mode="after")
    def check_priority_order(self) -> "CategorySchema":
        missing = [f for f in self.essential if f not in self.priority_order]
        if missing:
            raise ValueError(f"priority_order is missing essential fields: {missing}")
        no_template = [f for f in self.essential if f not in self.question_templates]
        if no_template:
            raise ValueError(f"no question template for essential fields: {no_template}")
        return self

    @property
    def extractable_fields(self) -> List[str]:
        """Every field the extractor should look for, without duplicates."""
        seen: List[str] = []
        for name in [*self.essential, *self.optional, *self.extra_fields]:
            if name not in seen:
                seen.append(name)
        return seen


class SchemaRegistry(BaseModel):
    """All category schemas keyed by category."""
    categories: Dict[Category, CategorySchema]

    @model_validator(mode="after")
    def check_general_present(self) -> "SchemaRegistry":
        if Category.GENERAL not in self.categories:
            raise ValueError("a 'general' category schema is required as fallback")
        return self

    def for_category(self, category: Optional[Category]) -> CategorySchema:
        """Schema for a category, falling back to general."""
        if category is not None and category in self.categories:
            return self.categories[category]
        return self.categories[Category.GENERAL]

    @classmethod
    def from_json(cls, raw: str) -> "SchemaRegistry":
        try:
            return cls.model_validate({"categories": json.loads(raw)})
        except (json.JSONDecodeError, ValidationError) as e:
            raise SchemaConfigurationError(f"Invalid category schema configuration: {e}") from e

    @classmethod
    def from_file(cls, path: str | Path) -> "SchemaRegistry":
        try:
            raw = Path(path).read_text(encoding="utf-8")
        except OSError as e:
            raise SchemaConfigurationError(f"Cannot read category schema file {path}: {e}") from e
        return cls.from_json(raw)

    @classmethod
    def default(cls) -> "SchemaRegistry":
        """Schemas packaged with support_engine."""
        raw = resources.files("support_engine").joinpath("data/category_schemas.json").read_text(
            encoding="utf-8"
        )
        return cls.from_json(raw)


def load_schema_registry(path: Optional[str] = None) -> SchemaRegistry:
    """Load schemas from `path` when given, else the packaged defaults."""
    if path:
        return SchemaRegistry.from_file(path)
    return SchemaRegistry.default()
