from __future__ import annotations

import re
from dataclasses import dataclass
from functools import lru_cache
from typing import Mapping


@dataclass(frozen=True, slots=True)
class Lexicon:
    """Keyword and pattern tables used by the text heuristics.

    Keywords match case-insensitively, ASCII ones only at a word start.
    ``*_pattern`` entries are regular expressions matched with ``re.IGNORECASE``.
    """

    exemplar_markers: tuple[str, ...]
    causal_markers: tuple[str, ...]
    age_pattern: str
    geography_keywords: tuple[str, ...]
    audience_keywords: tuple[str, ...]
    justification_keywords: tuple[str, ...]
    action_keywords: tuple[str, ...]
    outcome_keywords: tuple[str, ...]
    digital_keywords: tuple[str, ...]
    competitor_count_pattern: str
    differentiation_keywords: tuple[str, ...]
    theme_keywords: Mapping[str, tuple[str, ...]]
    efficiency_keywords: tuple[str, ...]
    sales_keywords: tuple[str, ...]
    senior_keywords: tuple[str, ...]
    social_media_keywords: tuple[str, ...]

    @classmethod
    def default(cls) -> "Lexicon":
        return cls(**DEFAULT_LEXICON_TABLE)


@lru_cache(maxsize=None)
def _keyword_regex(keywords: tuple[str, ...]) -> re.Pattern[str]:
    # ASCII keywords match at a word start so stems like "automat" still work
    parts = []
    for k in keywords:
        escaped = re.escape(k.lower())
        parts.append(rf"\b{escaped}" if k[:1].isascii() and k[:1].isalnum() else escaped)
    return re.compile("|".join(parts) or r"(?!)")


def contains_any(text: str, keywords: tuple[str, ...]) -> bool:
    return _keyword_regex(tuple(keywords)).search(text.lower()) is not None


DEFAULT_LEXICON_TABLE = {
    "exemplar_markers": ("例えば", "例：", "具体的には", "など", "e.g.", "for example", "for instance", "such as"),
    "causal_markers": ("なぜなら", "理由は", "ため", "から", "because", "since", "so that", "due to", "therefore"),
    "age_pattern": r"\d+\s*代|\d+\s*'?s\b|\b(teens|twenties|thirties|forties|fifties|sixties|seventies)\b|\baged?\s*\d+",
    "geography_keywords": (
        "地域", "圏内", "駅", "市", "区", "町", "県",
        "local", "area", "region", "station", "city", "town", "district", "prefecture", "neighborhood", "neighbourhood",
    ),
    "audience_keywords": (
        "男性", "女性", "ファミリー", "カップル", "単身", "会社員", "主婦", "学生", "シニア",
        "men", "women", "male", "female", "famil", "couple", "single", "office worker", "homemaker",
        "student", "senior", "parent", "tourist",
    ),
    "justification_keywords": (
        "理由", "根拠", "なぜなら", "ため", "から", "見込み", "予測", "計算",
        "because", "based on", "reason", "expect", "forecast", "estimate", "calculat", "projection",
    ),
    "action_keywords": (
        "導入", "制作", "実施", "開始", "運用", "活用",
        "introduce", "launch", "build", "create", "implement", "start", "run", "operate", "use", "adopt", "set up",
    ),
    "outcome_keywords": (
        "新規", "顧客", "獲得", "集客", "来店", "売上", "認知",
        "new customer", "customer", "acquisition", "attract", "visit", "sales", "revenue", "awareness",
    ),
    "digital_keywords": (
        "web", "sns", "インスタ", "google", "デジタル", "オンライン", "ネット", "hp", "サイト",
        "website", "online", "instagram", "digital", "internet", "e-commerce", "ec site", "app",
    ),
    "competitor_count_pattern": (
        r"\d+\s*(店|社|軒|shops?|stores?|competitors?|rivals?|businesses)|なし|ない|少ない|多い"
        r"|\bnone\b|\bno (direct )?competitors?\b|\bfew\b|\bmany\b|\bseveral\b"
    ),
    "differentiation_keywords": (
        "違い", "差別", "強み", "特徴", "独自", "こだわり", "他社にない",
        "differen", "unique", "strength", "only we", "unlike", "specialt", "signature",
    ),
    "theme_keywords": {
        "locale": ("地域", "地元", "local", "community", "region", "neighbo"),
        "quality": ("品質", "quality", "fresh", "organic", "seasonal"),
        "service": ("サービス", "おもてなし", "service", "hospitality"),
        "contribution": ("貢献", "contribut", "support", "give back"),
        "care": ("こだわり", "craft", "commitment", "carefully", "dedicat"),
    },
    "efficiency_keywords": (
        "効率化", "時間削減", "コスト削減", "自動化", "省力化", "内装", "改装", "スマートロック", "設備",
        "efficien", "time saving", "save time", "cost reduction", "reduce cost", "automat", "labor saving",
        "renovat", "interior", "smart lock", "equipment",
    ),
    "sales_keywords": (
        "新規", "顧客", "獲得", "集客", "売上", "認知", "リピート",
        "new customer", "customer", "acquisition", "attract", "sales", "revenue", "awareness", "repeat",
    ),
    "senior_keywords": ("60代", "70代", "高齢", "シニア", "60s", "70s", "senior", "elderly"),
    "social_media_keywords": ("sns", "instagram", "facebook", "tiktok", "twitter", "line公式", "social media"),
}


# Examples attached to improvement suggestions, keyed by question id.
_GOAL_EXAMPLE = (
    "Now: 40 groups a month -> Target: 50 groups a month (+10)\n"
    "Basis: Instagram ads bring about 35 enquiries a month, of which 30% are expected to visit"
)

IMPROVEMENT_EXAMPLES = {
    "Q5-1": (
        "Introduce a web booking system so reservations can be made 24 hours a day, adding 30 "
        "weekday-lunch groups a month of women office workers in their 30s from around the station "
        "and 300,000 yen in monthly sales."
    ),
    "Q5-8": _GOAL_EXAMPLE,
    "Q5-9": _GOAL_EXAMPLE,
}


ELEMENT_LABELS = {
    "insufficient_detail": "The answer is too short to assess",
    "age_bracket": "Target age bracket is unclear",
    "geography": "Target area is unclear",
    "audience_attribute": "Customer attributes are unclear",
    "numeric_value": "No concrete number is given",
    "justification": "The basis for the number is unclear",
    "goal_unrealistic": "The goal looks unrealistic (twice the current result or more)",
    "action_verb": "The concrete action is unclear",
    "outcome_linkage": "The link to new customers or sales is unclear",
    "digital_channel": "No digital channel is mentioned",
    "competitor_count": "The number of competitors is unclear",
    "differentiation": "The point of differentiation is unclear",
}


# Which structural checks apply to which questions: exact ids or id prefixes.
GAP_PROFILE_TABLE = {
    "audience": {"ids": ("Q5-1",), "prefixes": ("Q3-",)},
    "numeric_goal": {"ids": ("Q5-8", "Q5-9"), "prefixes": ()},
    "plan": {"ids": ("Q5-1",), "prefixes": ()},
    "competitive": {"ids": ("Q3-5",), "prefixes": ()},
}
