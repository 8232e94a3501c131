"""
Vision utilities: image loading/decoding and point/pixel mapping.
"""
from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Tuple, Union

import numpy as np
import cv2  # type: ignore


ImageLike = Union[str, bytes, np.ndarray]


def load_image(img: ImageLike) -> np.ndarray:
    """Load an image into a BGR numpy array.

    - str: treated as a file path and loaded via cv2.imread
    - bytes: decoded via cv2.imdecode
    - np.ndarray: returned as-is (assumed BGR or single-channel)
    """
    if isinstance(img, np.ndarray):
        return img
    if isinstance(img, (bytes, bytearray)):
        arr = np.frombuffer(img, dtype=np.uint8)
        mat = cv2.imdecode(arr, cv2.IMREAD_COLOR)
        if mat is None:
            raise ValueError("Failed to decode image bytes")
        return mat
    if isinstance(img, str):
        if not os.path.isfile(img):
            raise FileNotFoundError(f"Image file not found: {img}")
        mat = cv2.imread(img, cv2.IMREAD_COLOR)
        if mat is None:
            raise ValueError(f"Failed to load image from path: {img}")
        return mat
    raise TypeError(f"Unsupported image type: {type(img)}")


def to_rgb(img: np.ndarray) -> np.ndarray:
    """BGR/gray image -> 3-channel RGB (int16, safe for channel differences)."""
    if img.ndim == 2:
        img = cv2.cvtColor(img, cv2.COLOR_GRAY2BGR)
    elif img.shape[2] == 4:
        img = cv2.cvtColor(img, cv2.COLOR_BGRA2BGR)
    return img[:, :, ::-1].astype(np.int16)


@dataclass(frozen=True)
class PixelRect:
    """Pixel rectangle (x, y, width, height) in image coordinates."""

    x: int
    y: int
    width: int
    height: int


@dataclass(frozen=True)
class PointMapper:
    """Maps window points <-> image pixels through a content rectangle.

    The captured raster may carry letterboxing around the mirrored content;
    window points are laid out over the content rectangle only.
    """

    content: PixelRect
    display_scale: float
    window_width: float
    window_height: float

    @classmethod
    def build(cls, image_width: int, content: PixelRect, window_size: Tuple[float, float]) -> "PointMapper":
        window_width, window_height = window_size
        return cls(
            content=content,
            display_scale=image_width / max(window_width, 1.0),
            window_width=window_width,
            window_height=window_height,
        )

    @property
    def origin_x(self) -> float:
        return self.content.x / self.display_scale

    @property
    def origin_y(self) -> float:
        return self.content.y / self.display_scale

    @property
    def x_scale(self) -> float:
        return self.window_width / max(self.content.width / self.display_scale, 1.0)

    @property
    def y_scale(self) -> float:
        return self.window_height / max(self.content.height / self.display_scale, 1.0)

    def window_y_to_pixel(self, y: float) -> int:
        return int(((y / self.y_scale) + self.origin_y) * self.display_scale)

    def pixel_to_window(self, px: float, py: float) -> Tuple[float, float]:
        wx = ((px / self.display_scale) - self.origin_x) * self.x_scale
        wy = ((py / self.display_scale) - self.origin_y) * self.y_scale
        return wx, wy

    def pixel_length_to_points(self, length: float) -> float:
        return length / self.display_scale

    def in_window(self, x: float, y: float) -> bool:
        return 0 <= x <= self.window_width and 0 <= y <= self.window_height


__all__ = [
    "ImageLike",
    "load_image",
    "to_rgb",
    "PixelRect",
    "PointMapper",
]
