from .types import (
    WindowInfo,
    InputResult,
    DescribeResult,
    WindowBridge,
    MenuActionCapable,
    InputProvider,
    ScreenDescriber,
    ScreenCapturer,
)
from .matcher import MatchResult, find_match, is_visible
from .landmark import pick_landmark, fingerprint, are_equal
from .describer import OcrScreenDescriber, RecordingDescriber
from .session import ExplorationSession, ExplorationSnapshot, ExploredScreen

__all__ = [
    "WindowInfo",
    "InputResult",
    "DescribeResult",
    "WindowBridge",
    "MenuActionCapable",
    "InputProvider",
    "ScreenDescriber",
    "ScreenCapturer",
    "MatchResult",
    "find_match",
    "is_visible",
    "pick_landmark",
    "fingerprint",
    "are_equal",
    "OcrScreenDescriber",
    "RecordingDescriber",
    "ExplorationSession",
    "ExplorationSnapshot",
    "ExploredScreen",
]
