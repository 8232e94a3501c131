"""
ADB 适配封装

提供屏幕驱动所需的基础操作（均针对 serial 指定的设备）：
- devices()
- screencap() -> PNG bytes
- wm_size() -> (宽, 高) 像素
- tap(x, y) / swipe(x1, y1, x2, y2, dur_ms)
- input_text(text) / keyevent(code)
- start_app_monkey(pkg)
- open_url(url)
"""
from __future__ import annotations

import re
import subprocess
from typing import List, Optional, Tuple


class AdbError(RuntimeError):
    pass


_WM_SIZE_RE = re.compile(r"(\d+)x(\d+)")


class Adb:
    def __init__(self, adb_path: str = "adb", serial: str = "") -> None:
        self.adb = adb_path
        self.serial = serial

    def _target(self) -> List[str]:
        return ["-s", self.serial] if self.serial else []

    def _run(self, args: List[str], timeout: float = 10.0) -> subprocess.CompletedProcess:
        try:
            cp = subprocess.run(
                [self.adb, *args],
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                timeout=timeout,
            )
        except FileNotFoundError as e:
            raise AdbError(f"找不到 ADB 可执行文件: {self.adb}") from e
        except subprocess.TimeoutExpired as e:
            raise AdbError(f"ADB 命令超时: {' '.join(args)}") from e
        return cp

    def _shell(self, args: List[str], timeout: float = 10.0) -> subprocess.CompletedProcess:
        cp = self._run([*self._target(), "shell", *args], timeout=timeout)
        if cp.returncode != 0:
            raise AdbError((cp.stderr or b"").decode(errors="ignore"))
        return cp

    def devices(self, timeout: float = 10.0) -> List[str]:
        cp = self._run(["devices"], timeout=timeout)
        out = (cp.stdout or b"").decode(errors="ignore").splitlines()
        result = []
        for line in out:
            line = line.strip()
            if not line or line.lower().startswith("list of devices"):
                continue
            parts = line.split()
            if len(parts) >= 2 and parts[1] == "device":
                result.append(parts[0])
        return result

    def screencap(self, timeout: float = 15.0) -> bytes:
        try:
            out = subprocess.check_output(
                [self.adb, *self._target(), "exec-out", "screencap", "-p"],
                stderr=subprocess.STDOUT,
                timeout=timeout,
            )
            return out
        except FileNotFoundError as e:
            raise AdbError(f"找不到 ADB 可执行文件: {self.adb}") from e
        except subprocess.CalledProcessError as e:
            raise AdbError((e.output or b"").decode(errors="ignore")) from e
        except subprocess.TimeoutExpired as e:
            raise AdbError("ADB 截图超时") from e

    def wm_size(self, timeout: float = 5.0) -> Tuple[int, int]:
        """读取屏幕分辨率，优先 Override size。"""
        cp = self._shell(["wm", "size"], timeout=timeout)
        out = (cp.stdout or b"").decode(errors="ignore")
        size: Optional[Tuple[int, int]] = None
        for line in out.splitlines():
            m = _WM_SIZE_RE.search(line)
            if not m:
                continue
            size = (int(m.group(1)), int(m.group(2)))
            if line.lower().startswith("override"):
                break
        if size is None:
            raise AdbError(f"无法解析 wm size 输出: {out.strip()}")
        return size

    def tap(self, x: int, y: int, timeout: float = 10.0) -> None:
        self._shell(["input", "tap", str(x), str(y)], timeout=timeout)

    def swipe(self, x1: int, y1: int, x2: int, y2: int, dur_ms: int = 300, timeout: float = 10.0) -> None:
        self._shell(
            ["input", "swipe", str(x1), str(y1), str(x2), str(y2), str(dur_ms)],
            timeout=timeout,
        )

    def input_text(self, text: str, timeout: float = 10.0) -> None:
        # input text 不接受空格，需转义为 %s
        self._shell(["input", "text", text.replace(" ", "%s")], timeout=timeout)

    def keyevent(self, code: str, timeout: float = 10.0) -> None:
        self._shell(["input", "keyevent", code], timeout=timeout)

    def start_app_monkey(self, pkg: str, timeout: float = 10.0) -> None:
        cp = self._run([
            *self._target(), "shell", "monkey",
            "-p", pkg,
            "-c", "android.intent.category.LAUNCHER",
            "1"
        ], timeout=timeout)
        out = (cp.stdout or b"").decode(errors="ignore").lower() + (cp.stderr or b"").decode(errors="ignore").lower()
        # monkey 返回码可能为 0 但未真正注入事件
        if cp.returncode != 0 or "events injected" not in out:
            self._shell([
                "am", "start",
                "-a", "android.intent.action.MAIN",
                "-c", "android.intent.category.LAUNCHER",
                pkg
            ], timeout=timeout)

    def open_url(self, url: str, timeout: float = 10.0) -> None:
        self._shell(["am", "start", "-a", "android.intent.action.VIEW", "-d", url], timeout=timeout)
