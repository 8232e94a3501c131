"""
标签 → 屏幕元素匹配

按策略优先级依次尝试：
  exact     文本完全相等
  contains  忽略大小写/空白后相等或互相包含
  fuzzy     rapidfuzz 相似度不低于阈值
同一策略内按元素顺序取第一个；不同策略之间按优先级而非距离决定。
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional, Sequence

from rapidfuzz import fuzz

from ...core.config import settings
from ...core.constants import MatchStrategy
from ..ocr.types import TapPoint

_WS_RE = re.compile(r"\s+")


@dataclass(frozen=True)
class MatchResult:
    element: TapPoint
    strategy: MatchStrategy
    # fuzzy 策略的相似度（0-100），其它策略为 100
    score: float = 100.0


def normalize(text: str) -> str:
    """大小写折叠并压缩空白。"""
    return _WS_RE.sub(" ", text.casefold()).strip()


def find_match(
    label: str,
    elements: Sequence[TapPoint],
    *,
    fuzzy_threshold: Optional[float] = None,
    fuzzy_min_length: Optional[int] = None,
) -> Optional[MatchResult]:
    """在元素列表中查找标签。

    Returns:
        MatchResult 或 None（标签为空、列表为空或未匹配）
    """
    if not label or not elements:
        return None

    for e in elements:
        if e.text == label:
            return MatchResult(element=e, strategy=MatchStrategy.EXACT)

    needle = normalize(label)
    if not needle:
        return None

    # 大小写无关相等 → 标签在文字中 → 文字在标签中，每一轮按列表顺序
    normalized = [(e, normalize(e.text)) for e in elements]
    for accept in (
        lambda hay: hay == needle,
        lambda hay: needle in hay,
        lambda hay: hay in needle,
    ):
        for e, hay in normalized:
            if hay and accept(hay):
                return MatchResult(element=e, strategy=MatchStrategy.CONTAINS)

    threshold = settings.matcher_fuzzy_threshold if fuzzy_threshold is None else fuzzy_threshold
    min_length = settings.matcher_fuzzy_min_length if fuzzy_min_length is None else fuzzy_min_length
    if len(needle) < min_length:
        return None

    best: Optional[MatchResult] = None
    for e in elements:
        score = fuzz.ratio(needle, normalize(e.text))
        # 严格大于：同分保留靠前的元素
        if score >= threshold and (best is None or score > best.score):
            best = MatchResult(element=e, strategy=MatchStrategy.FUZZY, score=score)
    return best


def is_visible(label: str, elements: Sequence[TapPoint], **kwargs) -> bool:
    """与 find_match 相同的查找，只返回是否命中。"""
    return find_match(label, elements, **kwargs) is not None


__all__ = ["MatchResult", "normalize", "find_match", "is_visible"]
