"""
Hidden-Need Lexicon
Per-need keyword lists, context-capturing patterns and suggestion templates,
plus the sentiment cues used to boost need priority.
"""
import re
from dataclasses import dataclass
from typing import Dict, List, Pattern

from support_engine.models.needs import NeedType


@dataclass(frozen=True)
class NeedPatternSet:
    keywords: List[str]
    # Each pattern captures (before, trigger, after) with up to 20 chars of context
    patterns: List[Pattern[str]]
    suggestion_template: str
    category_weight: float


GENERIC_CONTEXT = "業務プロセス"

NEED_LEXICON: Dict[NeedType, NeedPatternSet] = {
    NeedType.EFFICIENCY: NeedPatternSet(
        keywords=["遅い", "時間がかかる", "効率", "自動化", "短縮", "スピード", "パフォーマンス", "改善"],
        patterns=[
            re.compile(r"(.{0,20})(遅|重|時間|手間|面倒)(.{0,20})"),
            re.compile(r"(.{0,20})(効率|自動|簡単|楽に)(.{0,20})"),
            re.compile(r"(.{0,20})(速く|早く|短時間)(.{0,20})"),
        ],
        suggestion_template="{context}の効率化・自動化ツールの導入",
        category_weight=1.2,
    ),
    NeedType.COST_REDUCTION: NeedPatternSet(
        keywords=["高い", "費用", "コスト", "予算", "料金", "価格", "節約", "削減"],
        patterns=[
            re.compile(r"(.{0,20})(高い|高額|費用|コスト)(.{0,20})"),
            re.compile(r"(.{0,20})(予算|料金|価格)(.{0,20})"),
            re.compile(r"(.{0,20})(安く|節約|削減)(.{0,20})"),
        ],
        suggestion_template="コスト最適化プランの提案",
        category_weight=1.1,
    ),
    NeedType.FEATURE_REQUEST: NeedPatternSet(
        keywords=["できない", "機能", "追加", "改善", "欲しい", "必要", "要望"],
        patterns=[
            re.compile(r"(.{0,20})(できない|できません|不可能)(.{0,20})"),
            re.compile(r"(.{0,20})(機能|フィーチャー|feature)(.{0,20})"),
            re.compile(r"(.{0,20})(欲しい|必要|要望|希望)(.{0,20})"),
        ],
        suggestion_template="機能追加・カスタマイズの検討",
        category_weight=1.0,
    ),
    NeedType.INTEGRATION: NeedPatternSet(
        keywords=["連携", "統合", "接続", "API", "連動", "同期", "インテグレーション"],
        patterns=[
            re.compile(r"(.{0,20})(連携|統合|接続)(.{0,20})"),
            re.compile(r"(.{0,20})(API|インテグレーション|integration)(.{0,20})"),
            re.compile(r"(.{0,20})(同期|連動|つなぐ)(.{0,20})"),
        ],
        suggestion_template="外部システムとの連携強化",
        category_weight=1.1,
    ),
    NeedType.SCALABILITY: NeedPatternSet(
        keywords=["増える", "拡大", "成長", "スケール", "大量", "多い", "増加"],
        patterns=[
            re.compile(r"(.{0,20})(増える|増えて|増加)(.{0,20})"),
            re.compile(r"(.{0,20})(拡大|成長|スケール)(.{0,20})"),
            re.compile(r"(.{0,20})(大量|多く|たくさん)(.{0,20})"),
        ],
        suggestion_template="スケーラビリティ向上プランの提案",
        category_weight=1.4,
    ),
    NeedType.USABILITY: NeedPatternSet(
        keywords=["難しい", "複雑", "分かりにくい", "使いにくい", "分からない", "迷う", "混乱"],
        patterns=[
            re.compile(r"(.{0,20})(難しい|複雑|分かりにくい)(.{0,20})"),
            re.compile(r"(.{0,20})(使いにくい|使い方|操作)(.{0,20})"),
            re.compile(r"(.{0,20})(分からない|迷う|混乱)(.{0,20})"),
        ],
        suggestion_template="UI/UX改善・トレーニングサポート",
        category_weight=1.1,
    ),
}


@dataclass(frozen=True)
class NeedSentimentCue:
    name: str
    pattern: Pattern[str]
    priority_boost: int


# Checked in order; the first matching cue names a message's sentiment
NEED_SENTIMENT_CUES: List[NeedSentimentCue] = [
    NeedSentimentCue("frustrated", re.compile(r"困っ|イライラ|うんざり|疲れ|大変|ストレス"), 2),
    NeedSentimentCue("urgent", re.compile(r"至急|緊急|今すぐ|すぐに|早急|急ぎ"), 3),
    NeedSentimentCue("disappointed", re.compile(r"がっかり|期待はずれ|残念|不満"), 1),
]

# Nouns for repeated-topic detection: kanji/katakana runs or latin words
TOPIC_TOKEN = re.compile(r"[一-龠ァ-ヶー]+|[a-zA-Z]+")

CONTEXT_WINDOW = 3
TOPIC_REPEAT_MIN = 2
TOPIC_BOOST_PER_REPEAT = 0.05

BASE_CONFIDENCE = 0.5
DENSITY_WEIGHT = 0.3
MAX_COMPLEXITY_BONUS = 0.2
PRIORITY_BOOST_FACTOR = 0.3

HIGH_PRIORITY_SCORE = 120.0
MEDIUM_PRIORITY_SCORE = 80.0
