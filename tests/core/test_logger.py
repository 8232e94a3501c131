import inspect
from uuid import uuid4

import pytest


def _flush_loguru(logger_module) -> None:
    complete_result = logger_module.logger.complete()
    if inspect.isawaitable(complete_result):
        iterator = complete_result.__await__()
        while True:
            try:
                next(iterator)
            except StopIteration:
                break


def _latest_log_file(log_dir, pattern):
    files = sorted(log_dir.glob(pattern))
    assert files, f"missing log file pattern: {pattern}"
    return files[-1]


@pytest.fixture()
def configured_logger(tmp_path):
    from screenpilot.core.config import settings
    import screenpilot.core.logger as logger_module

    original = {
        "log_level": settings.log_level,
        "log_path": settings.log_path,
        "log_retention_days": settings.log_retention_days,
        "log_console_enabled": settings.log_console_enabled,
        "log_file_enabled": settings.log_file_enabled,
    }

    settings.log_level = "DEBUG"
    settings.log_path = str(tmp_path)
    settings.log_retention_days = 3
    settings.log_console_enabled = False
    settings.log_file_enabled = True
    logger_module.setup_logger(force=True)

    try:
        yield logger_module, tmp_path
    finally:
        for key, value in original.items():
            setattr(settings, key, value)
        logger_module.setup_logger(force=True)


def test_file_output_written(configured_logger):
    logger_module, log_dir = configured_logger
    message = f"file-output-{uuid4()}"

    logger_module.logger.bind(module="Test").info(message)
    _flush_loguru(logger_module)

    content = _latest_log_file(log_dir, "screenpilot_*.log").read_text(encoding="utf-8")
    assert message in content
    assert "| Test |" in content


def test_unbound_records_use_default_module(configured_logger):
    logger_module, log_dir = configured_logger
    message = f"unbound-{uuid4()}"

    logger_module.logger.info(message)
    _flush_loguru(logger_module)

    content = _latest_log_file(log_dir, "screenpilot_*.log").read_text(encoding="utf-8")
    assert "| screenpilot |" in content
    assert message in content


def test_error_log_only_receives_errors(configured_logger):
    logger_module, log_dir = configured_logger
    info_message = f"info-{uuid4()}"
    error_message = f"error-{uuid4()}"

    logger_module.logger.info(info_message)
    logger_module.logger.error(error_message)
    _flush_loguru(logger_module)

    content = _latest_log_file(log_dir, "error_*.log").read_text(encoding="utf-8")
    assert error_message in content
    assert info_message not in content


def test_setup_logger_idempotent_when_forced_twice(configured_logger):
    logger_module, log_dir = configured_logger
    message = f"idempotent-{uuid4()}"

    logger_module.setup_logger(force=True)
    logger_module.setup_logger(force=True)
    logger_module.logger.info(message)
    _flush_loguru(logger_module)

    content = _latest_log_file(log_dir, "screenpilot_*.log").read_text(encoding="utf-8")
    assert content.count(message) == 1


def test_setup_logger_without_force_keeps_handlers(configured_logger):
    logger_module, log_dir = configured_logger
    message = f"no-force-{uuid4()}"

    returned = logger_module.setup_logger()
    returned.info(message)
    _flush_loguru(logger_module)

    assert returned is logger_module.logger
    content = _latest_log_file(log_dir, "screenpilot_*.log").read_text(encoding="utf-8")
    assert content.count(message) == 1


def test_file_sinks_disabled(tmp_path):
    from screenpilot.core.config import settings
    import screenpilot.core.logger as logger_module

    original = (settings.log_path, settings.log_console_enabled, settings.log_file_enabled)
    settings.log_path = str(tmp_path / "logs")
    settings.log_console_enabled = False
    settings.log_file_enabled = False
    try:
        logger_module.setup_logger(force=True)
        logger_module.logger.info("nowhere")
        _flush_loguru(logger_module)
        assert not (tmp_path / "logs").exists()
    finally:
        settings.log_path, settings.log_console_enabled, settings.log_file_enabled = original
        logger_module.setup_logger(force=True)
