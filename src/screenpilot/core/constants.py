"""
常量和枚举定义
"""
from enum import Enum


class StepStatus(str, Enum):
    """步骤执行状态"""
    PASSED = "PASS"
    FAILED = "FAIL"
    SKIPPED = "SKIP"


class MatchStrategy(str, Enum):
    """文本匹配策略（按优先级排列）"""
    EXACT = "exact"
    CONTAINS = "contains"
    FUZZY = "fuzzy"


class CompiledAction(str, Enum):
    """编译后的步骤动作"""
    TAP = "tap"
    SLEEP = "sleep"
    SCROLL_SEQUENCE = "scroll_sequence"
    PASSTHROUGH = "passthrough"


# set_network 支持的模式
NETWORK_MODES = (
    "airplane_on", "airplane_off",
    "wifi_on", "wifi_off",
    "cellular_on", "cellular_off",
)

# set_network 模式 → 设置页中的行标签
NETWORK_MODE_LABELS = {
    "airplane": "Airplane",
    "wifi": "Wi-Fi",
    "cellular": "Cellular",
}

# 菜单动作（View 菜单）
MENU_VIEW = "View"
MENU_HOME_SCREEN = "Home Screen"
MENU_APP_SWITCHER = "App Switcher"

# 编译文件后缀与格式版本
COMPILED_SUFFIX = ".compiled.json"
COMPILED_FORMAT_VERSION = 1
