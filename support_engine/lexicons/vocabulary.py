"""
Keyword Vocabulary
Stopwords, whitelists and need-type vocabulary used for keyword extraction.
"""
import re

# Need-type vocabulary, in inference precedence order
NEED_VOCABULARY = {
    "cost": ["費用", "価格", "予算", "コスト", "見積", "料金", "値段", "単価"],
    "timeline": ["期間", "納期", "スケジュール", "いつ", "期限", "タイムライン", "納入"],
    "integration": ["連携", "API", "連動", "接続", "インテグレーション", "データ連携"],
    "security": ["セキュリティ", "暗号", "化", "情報保護", "認証", "認可", "監査"],
    "marketing": [
        "マーケティング", "リード獲得", "反響", "施策", "配信", "CVR", "コンバージョン",
        "リターゲティング", "広告", "クリエイティブ",
    ],
    "ui_ux": ["UI", "UX", "デザイン", "画面", "設計", "使いやすさ", "ナビゲーション", "ワイヤーフレーム", "可用性"],
    "analytics": ["分析", "指標", "KPI", "ダッシュボード", "レポート", "可視化", "トラッキング", "ABテスト"],
    "development": ["要件", "設計", "実装", "テスト", "デプロイ", "CI", "CD", "バージョン", "API", "設計書"],
}

DEFAULT_NEED_TYPE = "general"

STOPWORDS = frozenset("""
です ます する した して の に は が を と も で から まで より また など そして しかし ただし ください でしょう ますか ですか
はい いいえ ありがとう ございます お願い いただき いただけ いただける 可能性 可能 くださいませ お手数 恐れ入ります 承知 了解
弊社 当社 御社 貴社 ご要望 ご相談 お問い合わせ ご連絡 こちら そちら あちら こと もの ため ので よう にて について 等 等々
""".split())

KEYWORD_WHITELIST = [
    "マーケティング", "リターゲティング", "ナビゲーション", "UI設計", "UX改善", "分析基盤", "データ連携",
    "カスタマージャーニー", "レポート自動化", "コンバージョン", "ABテスト",
]

COMPOUND_PATTERNS = [
    "マーケティング活動", "リターゲティング", "UI設計", "ナビゲーション", "レポート自動化", "データ連携",
    "顧客分析", "施策設計", "画面設計", "指標設計", "ダッシュボード設計",
]

WHITELIST_BOOST = 2
COMPOUND_BOOST = 3
MAX_KEYWORDS = 8
MAX_CORPUS_CHARS = 4000
MIN_STRONG_KEYWORDS = 3

URL_PATTERN = re.compile(r"https?://\S+")
EMAIL_PATTERN = re.compile(r"[\w.+-]+@[\w.-]+\.[a-zA-Z]{2,}")
BOILERPLATE_PATTERN = re.compile(
    r"(御社|弊社|貴社|ご要望|ご相談|お問い合わせ|ご連絡|よろしくお願いいたします|よろしくお願いします|はい|いいえ)"
)
STRONG_KEYWORD_PATTERN = re.compile(r"[一-龥ぁ-んァ-ヶーA-Za-z]")
ZERO_WIDTH_PATTERN = re.compile(r"[\u200B-\u200D\uFEFF]")
TOKEN_SPLIT_PATTERN = re.compile(r"[^\w\u3040-\u309F\u30A0-\u30FF\u4E00-\u9FFF]+")
SHORT_KATAKANA_PATTERN = re.compile(r"^[\u30A0-\u30FF]{1,3}$")
HIRAGANA_ONLY_PATTERN = re.compile(r"^[\u3040-\u309F]+$")
