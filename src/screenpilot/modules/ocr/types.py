"""OCR 识别结果数据结构。"""
from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class RawTextElement:
    """单个 OCR 文本框（窗口坐标，单位：点）。"""

    text: str
    # 边界框水平中心
    tap_x: float
    # 边界框上沿 / 下沿
    text_top_y: float
    text_bottom_y: float
    bbox_width: float
    confidence: float

    @property
    def center_y(self) -> float:
        return (self.text_top_y + self.text_bottom_y) / 2.0


@dataclass(frozen=True)
class TapPoint:
    """最终点击坐标，可直接用于 tap()。"""

    text: str
    tap_x: float
    tap_y: float
    confidence: float

    @property
    def center(self) -> tuple[float, float]:
        return (self.tap_x, self.tap_y)
