"""
Tests for the template response composer.
"""
import pytest

from support_engine.models.conversation import Category
from support_engine.services.response_composer import TemplateResponseComposer


# --- FIXTURES ---

@pytest.fixture
def composer() -> TemplateResponseComposer:
    return TemplateResponseComposer()


@pytest.fixture
def marketing_schema(tracker):
    return tracker.schemas.for_category(Category.MARKETING)


class TestNextQuestion:
    """Test suite for question selection."""

    def test_template_for_field(self, composer, marketing_schema):
        """Verifies the schema template is returned unchanged by default."""
        question = composer.next_question(marketing_schema, {}, "budget_range")

        assert question == marketing_schema.question_templates["budget_range"]

    def test_business_type_customization(self, composer, marketing_schema):
        """Verifies the template names a known business type."""
        question = composer.next_question(marketing_schema, {"business_type": "EC事業"}, "business_type")

        assert "EC事業における具体的な事業内容" in question
        assert "業界・事業" not in question

    def test_unknown_field(self, composer, marketing_schema):
        """Verifies fields without a template yield None."""
        assert composer.next_question(marketing_schema, {}, "monthly_revenue") is None

    def test_compose_falls_back_to_summary(self, composer, marketing_schema):
        """Verifies compose summarises once nothing is missing."""
        reply = composer.compose(marketing_schema, {"budget_range": "月額50万円"}, None)

        assert reply.startswith("ご相談内容を確認させていただきました。")
        assert "・ご予算: 月額50万円" in reply


class TestAcknowledgement:
    """Test suite for turn acknowledgements."""

    def test_new_values_are_acknowledged(self, composer):
        """Verifies business type and budget collected this turn are echoed back."""
        ack = composer.acknowledgement({}, {"business_type": "EC事業", "budget_range": "月額50万円"})

        assert ack == "EC事業を運営されているのですね。ご予算は月額50万円程度とのこと、承知いたしました。"

    def test_known_values_are_not_repeated(self, composer):
        """Verifies previously collected values fall back to a plain thank-you."""
        fields = {"budget_range": "月額50万円"}

        assert composer.acknowledgement(fields, fields) == "ありがとうございます。"


class TestSummary:
    """Test suite for the closing summary."""

    def test_lists_collected_fields_in_order(self, composer):
        """Verifies collected fields are listed with labels, lists joined."""
        summary = composer.summary({"current_tools": ["Shopify", "GA4"], "business_type": "EC事業"})
        lines = summary.splitlines()

        assert lines.index("・業界/事業: EC事業") < lines.index("・利用中のツール: Shopify, GA4")
        assert lines[-1].startswith("専門のスタッフ")
