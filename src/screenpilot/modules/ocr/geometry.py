"""
OCR 文本框 → 点击坐标

OCR 只能识别图标下方的文字标签，识别不到图标本身。对主屏幕这类
"图标 + 标签" 网格，点击文字中心往往落在标签上而不是图标上，因此
对符合条件的短标签整体向上偏移。

计算分三步：
  1. group_into_rows  — 按上沿 y 排序后按 row_tolerance 聚成行
  2. classify_rows    — 判定图标行，计算与上方参考行的间距
  3. apply_offsets    — 生成 TapPoint 列表
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Sequence

from ...core.config import settings
from .types import RawTextElement, TapPoint


@dataclass(frozen=True)
class GeometryParams:
    """点击坐标计算参数（默认取自 settings）。"""

    max_label_length: int
    max_label_width_fraction: float
    min_gap_for_offset: float
    icon_row_min_labels: int
    icon_offset: float
    row_tolerance: float

    @classmethod
    def from_settings(cls) -> "GeometryParams":
        return cls(
            max_label_length=settings.tap_max_label_length,
            max_label_width_fraction=settings.tap_max_label_width_fraction,
            min_gap_for_offset=settings.tap_min_gap_for_offset,
            icon_row_min_labels=settings.tap_icon_row_min_labels,
            icon_offset=settings.tap_icon_offset,
            row_tolerance=settings.tap_row_tolerance,
        )


@dataclass(frozen=True)
class Row:
    """同一水平位置的一组元素。"""

    elements: List[RawTextElement]
    bottom_y: float

    @property
    def top_y(self) -> float:
        return self.elements[0].text_top_y


@dataclass(frozen=True)
class ClassifiedRow:
    row: Row
    is_icon_row: bool
    # 与上方参考行底部的间距
    gap: float


def group_into_rows(
    sorted_elements: Sequence[RawTextElement],
    *,
    params: Optional[GeometryParams] = None,
) -> List[Row]:
    """把已按上沿排序的元素按 row_tolerance 分组成行。"""
    p = params or GeometryParams.from_settings()
    rows: List[Row] = []
    idx = 0
    while idx < len(sorted_elements):
        row_top = sorted_elements[idx].text_top_y
        end = idx + 1
        while end < len(sorted_elements) and sorted_elements[end].text_top_y - row_top < p.row_tolerance:
            end += 1
        members = list(sorted_elements[idx:end])
        rows.append(Row(elements=members, bottom_y=max(e.text_bottom_y for e in members)))
        idx = end
    return rows


def classify_rows(
    rows: Sequence[Row],
    window_width: float,
    *,
    params: Optional[GeometryParams] = None,
) -> List[ClassifiedRow]:
    """标记图标行并计算间距。

    图标行的间距从上一个多元素行（>=2 个元素）的底部算起，
    以跳过图标内部被识别出的零散文字（如日历图标里的日期）。
    """
    p = params or GeometryParams.from_settings()
    classified: List[ClassifiedRow] = []
    prev_bottom = 0.0
    prev_multi_bottom = 0.0

    for row in rows:
        short_count = sum(
            1 for e in row.elements
            if len(e.text) <= p.max_label_length
            and e.bbox_width < window_width * p.max_label_width_fraction
        )
        is_icon_row = short_count == len(row.elements) and short_count >= p.icon_row_min_labels
        gap = row.top_y - (prev_multi_bottom if is_icon_row else prev_bottom)
        classified.append(ClassifiedRow(row=row, is_icon_row=is_icon_row, gap=gap))

        prev_bottom = max(prev_bottom, row.bottom_y)
        if len(row.elements) >= 2:
            prev_multi_bottom = max(prev_multi_bottom, row.bottom_y)

    return classified


def apply_offsets(
    classified_rows: Sequence[ClassifiedRow],
    *,
    params: Optional[GeometryParams] = None,
) -> List[TapPoint]:
    p = params or GeometryParams.from_settings()
    points: List[TapPoint] = []
    for c in classified_rows:
        offset = c.is_icon_row and c.gap > p.min_gap_for_offset
        for e in c.row.elements:
            tap_y = max(e.text_top_y - p.icon_offset, 0.0) if offset else e.center_y
            points.append(TapPoint(text=e.text, tap_x=e.tap_x, tap_y=tap_y, confidence=e.confidence))
    return points


def compute_tap_points(
    elements: Sequence[RawTextElement],
    window_width: float,
    *,
    params: Optional[GeometryParams] = None,
) -> List[TapPoint]:
    """把 OCR 原始文本框转换为点击坐标（一一对应，按上沿升序，稳定排序）。

    Args:
        elements: OCR 结果，顺序任意
        window_width: 窗口宽度（点）
        params: 可选参数覆盖，默认读取 settings

    Returns:
        TapPoint 列表，长度与输入相同
    """
    p = params or GeometryParams.from_settings()
    ordered = sorted(elements, key=lambda e: e.text_top_y)
    rows = group_into_rows(ordered, params=p)
    return apply_offsets(classify_rows(rows, window_width, params=p), params=p)


__all__ = [
    "GeometryParams",
    "Row",
    "ClassifiedRow",
    "group_into_rows",
    "classify_rows",
    "apply_offsets",
    "compute_tap_points",
]
