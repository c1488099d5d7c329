"""
Tests for heuristic field extraction.
Verifies category routing, urgency detection and per-field extractors.
"""
import pytest

from support_engine.models.conversation import Category
from support_engine.services import field_extractor


class TestCategorize:
    """Test suite for first-message routing."""

    @pytest.mark.parametrize("text,expected", [
        ("月額200万円の予算でSEO対策を検討しています", Category.MARKETING),
        ("ECサイトの集客について相談したいです", Category.MARKETING),
        ("APIの連携でエラーが出ています", Category.TECH),
        ("昨日からサーバーが停止しています", Category.TECH),
        ("料金について相談したい", Category.GENERAL),
        ("", Category.GENERAL),
        (None, Category.GENERAL),
    ])
    def test_categorize(self, text, expected):
        """Verifies keyword families route to the right category."""
        assert field_extractor.categorize(text) == expected


class TestUrgency:
    """Test suite for urgency detection."""

    @pytest.mark.parametrize("text", [
        "至急対応お願いします",
        "緊急です",
        "システム全体がダウンしています",
        "業務が止まっています",
    ])
    def test_urgent(self, text):
        """Verifies urgency keywords and outage phrases are detected."""
        assert field_extractor.is_urgent(text) is True

    @pytest.mark.parametrize("text", ["料金を教えてください", "", None])
    def test_not_urgent(self, text):
        """Verifies ordinary text is not urgent."""
        assert field_extractor.is_urgent(text) is False


class TestMarketingFields:
    """Test suite for marketing field extractors."""

    def test_monthly_budget(self):
        """Verifies a 月額 budget keeps its unit and prefix."""
        fields = field_extractor.extract(
            "月額200万円の予算でSEO対策を検討しています", ["budget_range", "business_type", "ad_spend"]
        )

        assert fields == {"budget_range": "月額200万円"}

    def test_ad_spend_claims_amount(self):
        """Verifies an ad-spend mention is not taken as the budget."""
        fields = field_extractor.extract("広告費は月30万円です", ["budget_range", "ad_spend"])

        assert fields == {"ad_spend": "月30万円"}

    def test_yearly_budget(self):
        """Verifies a yearly mention gets the 年額 prefix."""
        assert field_extractor.extract_budget_range("予算は年間500万円です") == "年額500万円"

    @pytest.mark.parametrize("text,expected", [
        ("月額1.5億円の予算で検討しています", "月額1.5億円"),
        ("月額150.5万円の予算です", "月額150.5万円"),
        ("予算は月1,200.5万円程度です", "月額1200.5万円"),
    ])
    def test_decimal_budget(self, text, expected):
        """Verifies decimal amounts are captured whole, not from the digits after the point."""
        fields = field_extractor.extract(text, ["budget_range"])

        assert fields == {"budget_range": expected}
        assert field_extractor.budget_in_man_yen(fields["budget_range"]) >= 100

    def test_decimal_ad_spend(self):
        """Verifies decimal ad spend keeps its fraction."""
        assert field_extractor.extract_ad_spend("広告費は月2.5万円です") == "月2.5万円"

    def test_budget_without_unit(self):
        """Verifies amounts without a unit still end in 円."""
        assert field_extractor.extract_budget_range("予算は300000円です") == "300000円"

    def test_tools(self):
        """Verifies whitelisted tools are collected in whitelist order."""
        tools = field_extractor.extract_current_tools("ShopifyとGoogle Analyticsを使っています")

        assert tools == ["Shopify", "Google Analytics"]

    @pytest.mark.parametrize("text,expected", [
        ("BtoB SaaSを提供しています", "BtoB SaaS"),
        ("SaaS企業です", "SaaS"),
        ("アパレルのECサイトを運営しています", "EC事業"),
        ("食品業を営んでいます", "食品業"),
        ("雑貨ショップを運営しています", "雑貨ショップ"),
    ])
    def test_business_type(self, text, expected):
        """Verifies business types are checked from most to least specific."""
        assert field_extractor.extract_business_type(text) == expected

    def test_revenue(self):
        """Verifies revenue amounts are extracted with their unit."""
        assert field_extractor.extract_monthly_revenue("月商500万円です") == "500万円"

    def test_target_metrics_need_improvement_context(self):
        """Verifies metrics are only collected alongside an improvement verb."""
        assert field_extractor.extract_target_metrics("CVRを向上させたい") == ["CVR"]
        assert field_extractor.extract_target_metrics("CVRは2%です") is None

    def test_challenges_and_timeline(self):
        """Verifies challenge sentences and timelines are captured."""
        text = "売上が伸び悩んでいます。3ヶ月以内に改善したいです"

        assert field_extractor.extract_challenges(text) == "売上が伸び悩んでいます"
        assert field_extractor.extract_timeline(text) == "3ヶ月以内"


class TestTechFields:
    """Test suite for tech field extractors."""

    def test_error_sentence(self):
        """Verifies the sentence mentioning the error is kept."""
        fields = field_extractor.extract(
            "APIの連携でエラーが出ています", ["system_type", "error_details", "occurrence_time"]
        )

        assert fields == {"system_type": "API", "error_details": "APIの連携でエラーが出ています"}

    def test_error_fallback_and_occurrence(self):
        """Verifies outage signals without an error sentence use the fallback."""
        fields = field_extractor.extract(
            "昨日からサーバーが停止しています", ["system_type", "error_details", "occurrence_time"]
        )

        assert fields == {
            "system_type": "サーバー",
            "error_details": "不具合が発生",
            "occurrence_time": "昨日から",
        }

    def test_affected_users_and_attempts(self):
        """Verifies user counts and attempted fixes are extracted."""
        text = "1,200名が影響を受けています。再起動とキャッシュ削除は試しました"

        assert field_extractor.extract_affected_users(text) == "1200名"
        assert field_extractor.extract_attempted_solutions(text) == ["再起動", "キャッシュ"]


class TestGeneralFields:
    """Test suite for general inquiry extractors."""

    def test_inquiry_and_company_size(self):
        """Verifies inquiry type and company size."""
        fields = field_extractor.extract(
            "料金について相談したい。従業員50名の会社です", ["inquiry_type", "company_size"]
        )

        assert fields == {"inquiry_type": "料金・費用", "company_size": "50名"}

    def test_budget_consideration(self):
        """Verifies undecided budgets are captured verbatim."""
        assert field_extractor.extract_budget_consideration("予算は未定です") == "予算は未定"


class TestExtract:
    """Test suite for the extraction entry point."""

    def test_empty_text(self):
        """Verifies empty text extracts nothing."""
        assert field_extractor.extract("", ["budget_range"]) == {}
        assert field_extractor.extract(None, ["budget_range"]) == {}

    def test_unknown_fields_are_skipped(self):
        """Verifies field names without an extractor are ignored."""
        assert field_extractor.extract("月額50万円", ["favourite_colour", "budget_range"]) == {
            "budget_range": "月額50万円"
        }

    @pytest.mark.parametrize("value,expected", [
        ("月額200万円", 200.0),
        ("年額1億円", 10000.0),
        ("月額5千円", 0.5),
        ("1,000,000円", 100.0),
        ("未定", None),
        (["月額200万円"], None),
        (None, None),
    ])
    def test_budget_in_man_yen(self, value, expected):
        """Verifies budgets normalize to 万円."""
        result = field_extractor.budget_in_man_yen(value)
        if expected is None:
            assert result is None
        else:
            assert result == pytest.approx(expected)
