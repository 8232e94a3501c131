"""
ADB 目标：把一台 Android 设备包装为执行引擎需要的四个接口

- WindowBridge      窗口尺寸（wm size / adb_point_scale）
- MenuActionCapable Home Screen / App Switcher
- InputProvider     tap / swipe / type / key / launch / open_url
- ScreenCapturer    screencap PNG

坐标单位为点，发送给设备前乘以 point_scale 换算回像素。
AdbError 在这里被转换为错误字符串，不向执行引擎抛出。
"""
from __future__ import annotations

from typing import Dict, Optional, Sequence

from ...core.config import settings
from ...core.constants import MENU_APP_SWITCHER, MENU_HOME_SCREEN
from ...core.logger import logger
from ..ui.types import InputResult, WindowInfo
from .adb import Adb, AdbError

# 按键名 → Android keycode
KEYCODES: Dict[str, str] = {
    "return": "KEYCODE_ENTER",
    "enter": "KEYCODE_ENTER",
    "escape": "KEYCODE_ESCAPE",
    "back": "KEYCODE_BACK",
    "delete": "KEYCODE_DEL",
    "backspace": "KEYCODE_DEL",
    "tab": "KEYCODE_TAB",
    "space": "KEYCODE_SPACE",
    "up": "KEYCODE_DPAD_UP",
    "down": "KEYCODE_DPAD_DOWN",
    "left": "KEYCODE_DPAD_LEFT",
    "right": "KEYCODE_DPAD_RIGHT",
    "home": "KEYCODE_HOME",
    "menu": "KEYCODE_MENU",
}

MENU_KEYCODES: Dict[str, str] = {
    MENU_HOME_SCREEN: "KEYCODE_HOME",
    MENU_APP_SWITCHER: "KEYCODE_APP_SWITCH",
}


class AdbTarget:
    def __init__(
        self,
        serial: str = "",
        adb: Optional[Adb] = None,
        *,
        name: Optional[str] = None,
        point_scale: Optional[float] = None,
    ) -> None:
        self.adb = adb or Adb(settings.adb_path, serial or settings.adb_serial)
        self._name = name or serial or self.adb.serial or "android"
        self.point_scale = point_scale or settings.adb_point_scale
        self._log = logger.bind(module="AdbTarget")

    def _px(self, v: float) -> int:
        return int(round(v * self.point_scale))

    # ── WindowBridge ──

    @property
    def target_name(self) -> str:
        return self._name

    def get_window_info(self) -> Optional[WindowInfo]:
        try:
            w, h = self.adb.wm_size()
        except AdbError as e:
            self._log.warning(f"获取屏幕尺寸失败: {e}")
            return None
        return WindowInfo(
            width=w / self.point_scale,
            height=h / self.point_scale,
            orientation="portrait" if h >= w else "landscape",
        )

    # ── MenuActionCapable ──

    def trigger_menu_action(self, menu: str, item: str) -> bool:
        code = MENU_KEYCODES.get(item)
        if code is None:
            self._log.warning(f"不支持的菜单项: {menu} > {item}")
            return False
        try:
            self.adb.keyevent(code)
        except AdbError as e:
            self._log.warning(f"菜单操作失败 {item}: {e}")
            return False
        return True

    # ── InputProvider ──

    def tap(self, x: float, y: float) -> Optional[str]:
        try:
            self.adb.tap(self._px(x), self._px(y))
        except AdbError as e:
            return f"Tap failed: {e}"
        return None

    def swipe(self, from_x: float, from_y: float, to_x: float, to_y: float, duration_ms: int) -> Optional[str]:
        try:
            self.adb.swipe(self._px(from_x), self._px(from_y), self._px(to_x), self._px(to_y), duration_ms)
        except AdbError as e:
            return f"Swipe failed: {e}"
        return None

    def type_text(self, text: str) -> InputResult:
        try:
            self.adb.input_text(text)
        except AdbError as e:
            return InputResult(success=False, error=f"Type failed: {e}")
        return InputResult(success=True)

    def press_key(self, key: str, modifiers: Sequence[str] = ()) -> InputResult:
        code = KEYCODES.get(key.lower())
        if code is None:
            return InputResult(success=False, error=f"Unknown key: {key}")
        try:
            self.adb.keyevent(code)
        except AdbError as e:
            return InputResult(success=False, error=f"Press key failed: {e}")
        if modifiers:
            return InputResult(success=True, warning=f"modifiers ignored on adb: {', '.join(modifiers)}")
        return InputResult(success=True)

    def launch_app(self, name: str) -> Optional[str]:
        try:
            self.adb.start_app_monkey(name)
        except AdbError as e:
            return f"Launch failed: {e}"
        return None

    def open_url(self, url: str) -> Optional[str]:
        try:
            self.adb.open_url(url)
        except AdbError as e:
            return f"Open URL failed: {e}"
        return None

    def shake(self) -> InputResult:
        return InputResult(success=False, error="Shake is not supported on adb targets")

    # ── ScreenCapturer ──

    def capture_png(self) -> Optional[bytes]:
        try:
            return self.adb.screencap()
        except AdbError as e:
            self._log.warning(f"截图失败: {e}")
            return None
