"""
地标选择与屏幕指纹

地标：用作 wait_for / assert 锚点的最具辨识度的文字元素。
指纹：过滤后排序的文字列表，用于判断 "操作后屏幕没有变化"。
两者共用同一套过滤规则：状态栏区域、时间、纯数字都不稳定。
"""
from __future__ import annotations

import re
from typing import List, Optional, Sequence

from ..ocr.types import TapPoint

LANDMARK_MIN_LENGTH = 3
LANDMARK_MAX_LENGTH = 40
LANDMARK_MIN_CONFIDENCE = 0.5
# 状态栏高度（点），其内的元素随时间变化
STATUS_BAR_MAX_Y = 80.0
# 页面标题所在区域
HEADER_ZONE = (100.0, 250.0)

TIME_PATTERN = re.compile(r"^\d{1,2}:\d{2,3}$")
BARE_NUMBER_PATTERN = re.compile(r"^\d{1,3}$")


def is_unstable(element: TapPoint) -> bool:
    """状态栏内、时间格式、1-3 位纯数字的元素不参与地标与指纹。"""
    text = element.text.strip()
    return (
        element.tap_y < STATUS_BAR_MAX_Y
        or bool(TIME_PATTERN.match(text))
        or bool(BARE_NUMBER_PATTERN.match(text))
    )


def pick_landmark(elements: Sequence[TapPoint]) -> Optional[str]:
    """选出地标文字：优先标题区内最靠上的，否则取最靠上的候选；无候选返回 None。"""
    candidates = [
        e for e in elements
        if LANDMARK_MIN_LENGTH <= len(e.text) <= LANDMARK_MAX_LENGTH
        and e.confidence >= LANDMARK_MIN_CONFIDENCE
        and not is_unstable(e)
    ]
    if not candidates:
        return None

    low, high = HEADER_ZONE
    header = [e for e in candidates if low <= e.tap_y <= high]
    pool = header or candidates
    return min(pool, key=lambda e: e.tap_y).text


def fingerprint(elements: Sequence[TapPoint]) -> List[str]:
    return sorted(e.text for e in elements if not is_unstable(e))


def are_equal(lhs: Sequence[TapPoint], rhs: Sequence[TapPoint]) -> bool:
    """两次感知的屏幕内容是否相同。"""
    return fingerprint(lhs) == fingerprint(rhs)


__all__ = [
    "STATUS_BAR_MAX_Y",
    "HEADER_ZONE",
    "is_unstable",
    "pick_landmark",
    "fingerprint",
    "are_equal",
]
