"""
Field Extraction Patterns
Regexes, whitelists and keyword tables consumed by the field extractor.
"""
import re

# --- Category routing -------------------------------------------------------

MARKETING_CATEGORY_PATTERN = re.compile(r"広告|マーケティング|SEO|CVR|売上|集客|EC|コンバージョン|リード|キャンペーン")
TECH_CATEGORY_PATTERN = re.compile(r"API|エラー|不具合|システム|サーバー|データベース|バグ|障害|連携|統合")

# --- Urgency ------------------------------------------------------------------

URGENCY_PATTERN = re.compile(r"至急|緊急|すぐに|今すぐ|システム.*ダウン|業務.*止|全体.*ダウン")

# --- Business type ------------------------------------------------------------

BTOB_SAAS_PATTERN = re.compile(r"BtoB\s*SaaS", re.IGNORECASE)
SAAS_PATTERN = re.compile(r"SaaS(?:企業|事業)?")
INDUSTRY_PATTERN = re.compile(r"(?:小売|アパレル|EC|食品|製造|サービス|IT|不動産|医療|教育)業?")
EC_SITE_PATTERN = re.compile(r"EC\s*(?:サイト|事業)")
OPERATED_BUSINESS_PATTERN = re.compile(r"(?:サイト|ショップ|店舗|会社|企業)を?(?:運営|経営|営業)")
OPERATED_BUSINESS_NAME_PATTERN = re.compile(r"[^、。\s]+(?:サイト|ショップ|店舗)")

# --- Money ----------------------------------------------------------------------

# Groups: amount, unit (万/千/億 or absent)
_MONEY = r"(\d[\d,]*(?:\.\d+)?)\s*(万|千|億)?円"
REVENUE_PATTERN = re.compile(r"(月商|年商|売上).*?" + _MONEY)
MONTHLY_BUDGET_PATTERN = re.compile(r"月額.*?" + _MONEY)
AD_SPEND_PATTERN = re.compile(r"広告費.*?" + _MONEY)
GENERIC_BUDGET_PATTERN = re.compile(r"(?:予算|費用).*?" + _MONEY)
BUDGET_AMOUNT_PATTERN = re.compile(r"(\d+(?:\.\d+)?)\s*(万|千|億)?円")

# Multipliers converting each unit to 万円
MAN_YEN_MULTIPLIER = {"億": 10000.0, "万": 1.0, "千": 0.1, "": 0.0001}

# --- Tools ----------------------------------------------------------------------

TOOL_WHITELIST = [
    "Shopify", "Google Analytics", "GA4", "Facebook", "Instagram",
    "Twitter", "LINE", "Salesforce", "HubSpot", "Marketo",
    "WordPress", "EC-CUBE", "BASE", "STORES", "カラーミーショップ",
]

# --- Marketing optional -----------------------------------------------------------

TARGET_METRIC_KEYWORDS = ["CVR", "CPA", "ROAS", "CTR", "LTV", "売上", "集客", "リード", "問い合わせ数", "会員数", "PV"]
TARGET_METRIC_CONTEXT_PATTERN = re.compile(r"(?:向上|改善|増加|拡大|増やし|上げ|削減|下げ)")
CHALLENGE_SENTENCE_PATTERN = re.compile(r"[^。！？\n]*(?:課題|困って|悩み|問題|伸びない|伸び悩)[^。！？\n]*")
TIMELINE_PATTERN = re.compile(
    r"\d+\s*(?:ヶ月|か月|カ月|週間|日)(?:以内|後|で|まで)?|今月中|来月|年内|年度内|今期中|来期|今週中|\d+月(?:まで|中)"
)

# --- Tech -------------------------------------------------------------------------

SYSTEM_TYPE_PATTERN = re.compile(r"API|データベース|サーバー|フロントエンド|バックエンド|インフラ|システム")
ERROR_SIGNAL_PATTERN = re.compile(r"エラー|不具合|障害|停止|遅延|タイムアウト")
ERROR_SENTENCE_PATTERN = re.compile(r"[^。]*(?:エラー|不具合|障害)[^。]*")
ERROR_FALLBACK = "不具合が発生"
OCCURRENCE_TIME_PATTERN = re.compile(
    r"(?:昨日|今朝|今日|本日|昨夜|先週|先月|数日前|\d+\s*(?:時|日|週間|分)前?)(?:の[^、。]{0,10})?(?:から|以降|頃|より)?"
)
AFFECTED_USERS_PATTERN = re.compile(r"(\d+[\d,]*)\s*(?:名|人|ユーザー|アカウント)|全員|全社|全ユーザー|一部のユーザー")
ATTEMPTED_SOLUTION_KEYWORDS = ["再起動", "再インストール", "キャッシュ", "ログアウト", "再ログイン", "再設定", "アップデート", "ロールバック"]

# --- General -------------------------------------------------------------------------

INQUIRY_TYPE_KEYWORDS = [
    ("見積", "お見積り"),
    ("料金", "料金・費用"),
    ("費用", "料金・費用"),
    ("導入", "導入相談"),
    ("資料", "資料請求"),
    ("契約", "契約"),
    ("解約", "解約"),
    ("採用", "採用"),
    ("提携", "業務提携"),
    ("事例", "実績・事例"),
    ("相談", "ご相談"),
]
COMPANY_SIZE_PATTERN = re.compile(r"(?:従業員|社員|スタッフ)?\s*(\d+[\d,]*)\s*(?:名|人)(?:規模|程度|ほど)?")
BUDGET_CONSIDERATION_PATTERN = re.compile(r"予算(?:は|が)?(?:未定|決まって(?:い)?ない|検討中|あり|なし)")
