"""
Tests for category schema configuration loading and validation.
"""
import json

import pytest

from support_engine.models.conversation import Category
from support_engine.models.schema import (
    SchemaConfigurationError,
    SchemaRegistry,
    load_schema_registry,
)


def _schema(**overrides) -> dict:
    schema = {
        "label": "一般",
        "channel": "#general-support",
        "essential": ["inquiry_type"],
        "priority_order": ["inquiry_type"],
        "question_templates": {"inquiry_type": "どのようなご用件でしょうか？"},
    }
    schema.update(overrides)
    return schema


class TestSchemaRegistry:
    """Test suite for the schema registry."""

    def test_packaged_defaults(self):
        """Verifies the packaged schemas cover every category."""
        registry = load_schema_registry()

        assert set(registry.categories) == {Category.MARKETING, Category.TECH, Category.GENERAL}
        assert registry.for_category(Category.TECH).channel == "#tech-support"
        assert registry.for_category(Category.MARKETING).essential == [
            "business_type", "budget_range", "current_tools"
        ]

    def test_fallback_to_general(self):
        """Verifies unknown or missing categories use the general schema."""
        registry = SchemaRegistry.from_json(json.dumps({"general": _schema()}))

        assert registry.for_category(Category.TECH).channel == "#general-support"
        assert registry.for_category(None).channel == "#general-support"

    def test_general_is_required(self):
        """Verifies a registry without general is rejected."""
        with pytest.raises(SchemaConfigurationError):
            SchemaRegistry.from_json(json.dumps({"tech": _schema()}))

    def test_essential_must_be_ordered(self):
        """Verifies every essential field needs a priority position."""
        with pytest.raises(SchemaConfigurationError):
            SchemaRegistry.from_json(json.dumps({"general": _schema(priority_order=[])}))

    def test_essential_needs_template(self):
        """Verifies every essential field needs a question template."""
        with pytest.raises(SchemaConfigurationError):
            SchemaRegistry.from_json(json.dumps({"general": _schema(question_templates={})}))

    def test_invalid_json(self):
        """Verifies malformed JSON raises a configuration error."""
        with pytest.raises(SchemaConfigurationError):
            SchemaRegistry.from_json("{not json")

    def test_missing_file(self, tmp_path):
        """Verifies an unreadable path raises a configuration error."""
        with pytest.raises(SchemaConfigurationError):
            load_schema_registry(str(tmp_path / "missing.json"))

    def test_load_from_file(self, tmp_path):
        """Verifies schemas load from a custom path."""
        path = tmp_path / "schemas.json"
        path.write_text(json.dumps({"general": _schema(channel="#help")}), encoding="utf-8")

        registry = load_schema_registry(str(path))

        assert registry.for_category(Category.GENERAL).channel == "#help"

    def test_extractable_fields_are_unique(self):
        """Verifies essentials, optionals and extras merge without duplicates."""
        registry = SchemaRegistry.from_json(json.dumps({
            "general": _schema(optional=["timeline"], extra_fields=["timeline", "business_type"])
        }))

        assert registry.for_category(Category.GENERAL).extractable_fields == [
            "inquiry_type", "timeline", "business_type"
        ]
