from .adb import Adb, AdbError
from .adapter import AdbTarget
from .targets import TargetContext, TargetRegistry

__all__ = ["Adb", "AdbError", "AdbTarget", "TargetContext", "TargetRegistry"]
