from screenpilot.modules.emu.adapter import AdbTarget
from screenpilot.modules.emu.targets import TargetContext, TargetRegistry
from screenpilot.modules.ui.describer import OcrScreenDescriber


class DummyAdb:
    serial = "device-1"


def _ctx(tag):
    return TargetContext(bridge=tag, input=tag, describer=tag, capture=tag)


def test_register_and_resolve():
    registry = TargetRegistry()
    ctx = _ctx("phone")

    registry.register("phone", ctx)

    assert registry.resolve("phone") is ctx
    assert registry.resolve("tablet") is None
    assert len(registry) == 1


def test_names_are_sorted():
    registry = TargetRegistry({"tablet": _ctx("t"), "phone": _ctx("p")})

    assert registry.names() == ["phone", "tablet"]


def test_register_overwrites():
    registry = TargetRegistry()
    registry.register("phone", _ctx("old"))
    registry.register("phone", _ctx("new"))

    assert registry.resolve("phone").bridge == "new"


def test_context_without_menu_defaults_to_none():
    assert _ctx("x").menu is None


def test_for_adb_wires_all_interfaces():
    target = AdbTarget(adb=DummyAdb(), point_scale=1.0)

    ctx = TargetContext.for_adb(target)

    assert ctx.bridge is target
    assert ctx.input is target
    assert ctx.capture is target
    assert ctx.menu is target
    assert isinstance(ctx.describer, OcrScreenDescriber)
