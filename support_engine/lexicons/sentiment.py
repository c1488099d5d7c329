"""
Sentiment Lexicon
Keyword lists and phrase patterns per sentiment category.
"""
import re
from dataclasses import dataclass
from typing import Dict, List, Pattern

from support_engine.models.sentiment import SentimentCategory


@dataclass(frozen=True)
class SentimentPatternSet:
    keywords: List[str]
    phrases: List[Pattern[str]]
    score_weight: float
    escalation_boost: float = 0.0


SENTIMENT_LEXICON: Dict[SentimentCategory, SentimentPatternSet] = {
    SentimentCategory.POSITIVE: SentimentPatternSet(
        keywords=["ありがとう", "助かりました", "素晴らしい", "良い", "便利", "嬉しい", "満足", "解決"],
        phrases=[
            re.compile(r"助かり(ました|ます)"),
            re.compile(r"ありがとう(ございます)?"),
            re.compile(r"素晴らしい|すばらしい"),
            re.compile(r"良い|いい(です|ですね)"),
            re.compile(r"便利|べんり"),
            re.compile(r"嬉しい|うれしい"),
            re.compile(r"満足|まんぞく"),
            re.compile(r"解決(しました|できました)"),
        ],
        score_weight=1.0,
    ),
    SentimentCategory.NEUTRAL: SentimentPatternSet(
        keywords=["確認", "質問", "教えて", "お願い", "方法", "どうやって", "いつ", "どこ"],
        phrases=[
            re.compile(r"確認(したい|させて|お願い)"),
            re.compile(r"質問(があります|です)"),
            re.compile(r"教えて(ください|もらえ)"),
            re.compile(r"お願い(します|いたします)"),
            re.compile(r"方法(を|は)"),
            re.compile(r"どうやって|どのように"),
            re.compile(r"いつ|どこ|何を"),
        ],
        score_weight=0.5,
    ),
    SentimentCategory.NEGATIVE: SentimentPatternSet(
        keywords=[
            "困る", "分からない", "できない", "難しい", "複雑", "面倒", "不便",
            "遅い", "改善", "悪化", "使えない", "使えません",
        ],
        phrases=[
            re.compile(r"困って(います|いる|る)"),
            re.compile(r"分から(ない|ず)"),
            re.compile(r"でき(ない|ません)"),
            re.compile(r"難しい|むずかしい"),
            re.compile(r"複雑|ふくざつ"),
            re.compile(r"面倒|めんどう"),
            re.compile(r"不便|ふべん"),
            re.compile(r"遅い|おそい"),
            re.compile(r"改善され(てい|ない)"),
            re.compile(r"悪化(して|する)"),
            re.compile(r"(全く|まったく).*(使え|でき)(ない|ません)"),
        ],
        score_weight=-1.0,
    ),
    SentimentCategory.FRUSTRATED: SentimentPatternSet(
        keywords=["いつまで", "何度も", "ずっと", "まだ", "もう", "イライラ", "うんざり", "最悪", "全く"],
        phrases=[
            re.compile(r"いつまで(待|かかる)"),
            re.compile(r"何度も|何回も"),
            re.compile(r"ずっと(同じ|続いて)"),
            re.compile(r"まだ(解決|終わら)"),
            re.compile(r"もう(いい|嫌|限界)"),
            re.compile(r"イライラ|いらいら"),
            re.compile(r"うんざり"),
            re.compile(r"最悪|さいあく"),
            re.compile(r"ひどい|酷い"),
            re.compile(r"全く.*(でき|使え)(ない|ません)"),
        ],
        score_weight=-2.0,
    ),
    SentimentCategory.URGENT: SentimentPatternSet(
        keywords=["至急", "緊急", "今すぐ", "すぐに", "早急", "急ぎ", "大至急", "今日中"],
        phrases=[
            re.compile(r"至急|しきゅう"),
            re.compile(r"緊急|きんきゅう"),
            re.compile(r"今すぐ|いますぐ"),
            re.compile(r"すぐに|直ちに"),
            re.compile(r"早急|そうきゅう"),
            re.compile(r"急(ぎ|いで)"),
            re.compile(r"大至急"),
            re.compile(r"今日中|本日中"),
        ],
        score_weight=-1.5,
        escalation_boost=2.0,
    ),
}

KEYWORD_MATCH_WEIGHT = 1.0
PHRASE_MATCH_WEIGHT = 1.5

# Categories whose keywords count as complaints when repeated
COMPLAINT_CATEGORIES = (SentimentCategory.NEGATIVE, SentimentCategory.FRUSTRATED)

PERFORMANCE_KEYWORD = "遅い"

# Overall-sentiment bands, checked top-down against the blended score
SENTIMENT_BANDS = [
    (0.5, SentimentCategory.POSITIVE),
    (-0.5, SentimentCategory.NEUTRAL),
    (-1.5, SentimentCategory.NEGATIVE),
]

TREND_DELTA = 0.5
RECENT_WINDOW = 3
RECENT_WEIGHT = 0.7
NEUTRAL_SCORE_CLAMP = 0.5


def complaint_keywords() -> List[str]:
    return [kw for cat in COMPLAINT_CATEGORIES for kw in SENTIMENT_LEXICON[cat].keywords]


def all_keywords() -> List[str]:
    # dict.fromkeys keeps first-seen order while dropping duplicates
    return list(dict.fromkeys(kw for ps in SENTIMENT_LEXICON.values() for kw in ps.keywords))
