"""
Field Extractor
Heuristic extraction of structured fields from free text.

Each field maps to a small extractor function driven by the tables in
`support_engine.lexicons.fields`. Extractors return None when nothing is
found, so a miss simply omits the field.
"""
import re
from typing import Callable, Dict, Iterable, Optional

from support_engine.lexicons import fields as lex
from support_engine.models.conversation import Category, FieldValue

FieldExtractorFn = Callable[[str], Optional[FieldValue]]


def _format_amount(match: re.Match, amount_group: int = 1) -> str:
    amount = match.group(amount_group).replace(",", "")
    unit = match.group(amount_group + 1) or ""
    return f"{amount}{unit}円"


def extract_business_type(text: str) -> Optional[FieldValue]:
    if lex.BTOB_SAAS_PATTERN.search(text):
        return "BtoB SaaS"
    if lex.SAAS_PATTERN.search(text):
        return "SaaS"
    if lex.EC_SITE_PATTERN.search(text):
        return "EC事業"
    match = lex.INDUSTRY_PATTERN.search(text)
    if match:
        return match.group(0)
    if lex.OPERATED_BUSINESS_PATTERN.search(text):
        name = lex.OPERATED_BUSINESS_NAME_PATTERN.search(text)
        return name.group(0) if name else None
    return None


def extract_monthly_revenue(text: str) -> Optional[FieldValue]:
    match = lex.REVENUE_PATTERN.search(text)
    return _format_amount(match, amount_group=2) if match else None


def extract_budget_range(text: str) -> Optional[FieldValue]:
    # 月額 wins; an ad-spend mention claims the amount for ad_spend instead
    match = lex.MONTHLY_BUDGET_PATTERN.search(text)
    if match:
        return f"月額{_format_amount(match)}"
    if lex.AD_SPEND_PATTERN.search(text):
        return None
    match = lex.GENERIC_BUDGET_PATTERN.search(text)
    if not match:
        return None
    if "月" in text:
        prefix = "月額"
    elif "年" in text:
        prefix = "年額"
    else:
        prefix = ""
    return f"{prefix}{_format_amount(match)}"


def extract_ad_spend(text: str) -> Optional[FieldValue]:
    if lex.MONTHLY_BUDGET_PATTERN.search(text):
        return None
    match = lex.AD_SPEND_PATTERN.search(text)
    if not match:
        return None
    prefix = "月" if "月" in text else ""
    return f"{prefix}{_format_amount(match)}"


def extract_current_tools(text: str) -> Optional[FieldValue]:
    tools = [tool for tool in lex.TOOL_WHITELIST if tool in text]
    return tools or None


def extract_target_metrics(text: str) -> Optional[FieldValue]:
    if not lex.TARGET_METRIC_CONTEXT_PATTERN.search(text):
        return None
    metrics = [kw for kw in lex.TARGET_METRIC_KEYWORDS if kw in text]
    return metrics or None


def extract_challenges(text: str) -> Optional[FieldValue]:
    match = lex.CHALLENGE_SENTENCE_PATTERN.search(text)
    return match.group(0).strip() if match else None


def extract_timeline(text: str) -> Optional[FieldValue]:
    match = lex.TIMELINE_PATTERN.search(text)
    return match.group(0) if match else None


def extract_system_type(text: str) -> Optional[FieldValue]:
    match = lex.SYSTEM_TYPE_PATTERN.search(text)
    return match.group(0) if match else None


def extract_error_details(text: str) -> Optional[FieldValue]:
    if not lex.ERROR_SIGNAL_PATTERN.search(text):
        return None
    sentence = lex.ERROR_SENTENCE_PATTERN.search(text)
    return sentence.group(0).strip() if sentence else lex.ERROR_FALLBACK


def extract_occurrence_time(text: str) -> Optional[FieldValue]:
    match = lex.OCCURRENCE_TIME_PATTERN.search(text)
    return match.group(0) if match else None


def extract_affected_users(text: str) -> Optional[FieldValue]:
    match = lex.AFFECTED_USERS_PATTERN.search(text)
    return match.group(0).replace(",", "") if match else None


def extract_attempted_solutions(text: str) -> Optional[FieldValue]:
    tried = [kw for kw in lex.ATTEMPTED_SOLUTION_KEYWORDS if kw in text]
    return tried or None


def extract_inquiry_type(text: str) -> Optional[FieldValue]:
    for keyword, label in lex.INQUIRY_TYPE_KEYWORDS:
        if keyword in text:
            return label
    return None


def extract_company_size(text: str) -> Optional[FieldValue]:
    match = lex.COMPANY_SIZE_PATTERN.search(text)
    if not match:
        return None
    return f"{match.group(1).replace(',', '')}名"


def extract_budget_consideration(text: str) -> Optional[FieldValue]:
    match = lex.BUDGET_CONSIDERATION_PATTERN.search(text)
    if match:
        return match.group(0)
    match = lex.GENERIC_BUDGET_PATTERN.search(text)
    return _format_amount(match) if match else None


FIELD_EXTRACTORS: Dict[str, FieldExtractorFn] = {
    "business_type": extract_business_type,
    "monthly_revenue": extract_monthly_revenue,
    "budget_range": extract_budget_range,
    "ad_spend": extract_ad_spend,
    "current_tools": extract_current_tools,
    "target_metrics": extract_target_metrics,
    "challenges": extract_challenges,
    "timeline": extract_timeline,
    "system_type": extract_system_type,
    "error_details": extract_error_details,
    "occurrence_time": extract_occurrence_time,
    "affected_users": extract_affected_users,
    "attempted_solutions": extract_attempted_solutions,
    "inquiry_type": extract_inquiry_type,
    "company_size": extract_company_size,
    "budget_consideration": extract_budget_consideration,
}


def extract(text: Optional[str], field_names: Iterable[str]) -> Dict[str, FieldValue]:
    """
    Run the extractors for `field_names` over `text`.

    Unknown field names are skipped; fields with no match are omitted.

    Example:
        >>> extract("月額200万円の予算でSEO対策を検討しています", ["budget_range"])
        {'budget_range': '月額200万円'}
    """
    if not text:
        return {}

    found: Dict[str, FieldValue] = {}
    for name in field_names:
        extractor = FIELD_EXTRACTORS.get(name)
        if extractor is None:
            continue
        value = extractor(text)
        if value:
            found[name] = value
    return found


def categorize(text: Optional[str]) -> Category:
    """Route a first message to a category by keyword families."""
    if not text:
        return Category.GENERAL
    if lex.MARKETING_CATEGORY_PATTERN.search(text):
        return Category.MARKETING
    if lex.TECH_CATEGORY_PATTERN.search(text):
        return Category.TECH
    return Category.GENERAL


def is_urgent(text: Optional[str]) -> bool:
    return bool(text) and lex.URGENCY_PATTERN.search(text) is not None


def budget_in_man_yen(value: Optional[FieldValue]) -> Optional[float]:
    """
    Normalize a budget string to 万円.

    Example:
        >>> budget_in_man_yen("月額200万円")
        200.0
        >>> budget_in_man_yen("年額1億円")
        10000.0
    """
    if not isinstance(value, str):
        return None
    match = lex.BUDGET_AMOUNT_PATTERN.search(value.replace(",", ""))
    if not match:
        return None
    return float(match.group(1)) * lex.MAN_YEN_MULTIPLIER[match.group(2) or ""]
