"""
Response Composer
Template-based stand-in for the text-generation collaborator.

The engine only decides *which* field to ask about next; a composer turns
that decision into the visitor-facing question or the closing summary.
Swap in an LLM-backed implementation of `ResponseComposer` to change the
prose without touching the engine.
"""
from typing import List, Mapping, Optional, Protocol

from support_engine.models.conversation import FieldValue, has_value
from support_engine.models.schema import CategorySchema

BUSINESS_TYPE_PLACEHOLDER = "業界・事業"

# (field, label) pairs listed in the closing summary, in display order
SUMMARY_FIELDS = [
    ("business_type", "業界/事業"),
    ("budget_range", "ご予算"),
    ("current_tools", "利用中のツール"),
    ("challenges", "課題"),
    ("system_type", "対象システム"),
    ("error_details", "エラー内容"),
    ("occurrence_time", "発生時期"),
    ("inquiry_type", "ご用件"),
    ("company_size", "企業規模"),
]


class ResponseComposer(Protocol):
    """
    Protocol for the text-generation collaborator.

    Receives the category schema, the collected fields and the next missing
    field (None once collection is finished).
    """

    def compose(
        self,
        schema: CategorySchema,
        collected_fields: Mapping[str, FieldValue],
        next_missing_field: Optional[str],
    ) -> str:
        """Question for `next_missing_field`, or the closing summary when it is None."""
        ...

    def acknowledgement(
        self,
        previous_fields: Mapping[str, FieldValue],
        collected_fields: Mapping[str, FieldValue],
    ) -> str:
        """Short prefix recognising what this turn added."""
        ...


def _display(value: FieldValue) -> str:
    return ", ".join(value) if isinstance(value, list) else value


class TemplateResponseComposer:
    """Composes replies from the schema's question templates."""

    def compose(
        self,
        schema: CategorySchema,
        collected_fields: Mapping[str, FieldValue],
        next_missing_field: Optional[str],
    ) -> str:
        if next_missing_field is None:
            return self.summary(collected_fields)
        return self.next_question(schema, collected_fields, next_missing_field) or self.summary(collected_fields)

    def next_question(
        self,
        schema: CategorySchema,
        collected_fields: Mapping[str, FieldValue],
        field: str,
    ) -> Optional[str]:
        """
        Question template for `field`, rephrased with the business type when
        it is already known.
        """
        template = schema.question_templates.get(field)
        if template is None:
            return None

        business_type = collected_fields.get("business_type")
        if has_value(business_type) and BUSINESS_TYPE_PLACEHOLDER in template:
            template = template.replace(
                BUSINESS_TYPE_PLACEHOLDER, f"{_display(business_type)}における具体的な事業内容"
            )
        return template

    def acknowledgement(
        self,
        previous_fields: Mapping[str, FieldValue],
        collected_fields: Mapping[str, FieldValue],
    ) -> str:
        """Recognise a business type or budget collected on this turn."""
        parts: List[str] = []

        business_type = collected_fields.get("business_type")
        if has_value(business_type) and not has_value(previous_fields.get("business_type")):
            parts.append(f"{_display(business_type)}を運営されているのですね。")

        budget = collected_fields.get("budget_range")
        if has_value(budget) and not has_value(previous_fields.get("budget_range")):
            parts.append(f"ご予算は{_display(budget)}程度とのこと、承知いたしました。")

        return "".join(parts) or "ありがとうございます。"

    def summary(self, collected_fields: Mapping[str, FieldValue]) -> str:
        lines: List[str] = ["ご相談内容を確認させていただきました。", "", "【お客様情報】"]
        for name, label in SUMMARY_FIELDS:
            value = collected_fields.get(name)
            if has_value(value):
                lines.append(f"・{label}: {_display(value)}")
        lines.append("")
        lines.append("専門のスタッフが詳細なご提案をさせていただきます。しばらくお待ちください。")
        return "\n".join(lines)
