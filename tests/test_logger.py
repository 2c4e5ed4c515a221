import logging

from guidex.logger import get_logger, setup_logging


def test_setup_writes_under_log_dir(tmp_path, monkeypatch):
    monkeypatch.setenv("GUIDEX_LOG_LEVEL", "debug")
    root = setup_logging(log_dir=tmp_path)
    try:
        get_logger("tests").debug("board refreshed")
        get_logger("tests").error("store offline")
        for handler in root.handlers:
            handler.flush()

        assert "board refreshed" in (tmp_path / "guidex.log").read_text(encoding="utf-8")
        errors = (tmp_path / "errors.log").read_text(encoding="utf-8")
        assert "store offline" in errors
        assert "board refreshed" not in errors
    finally:
        for handler in list(root.handlers):
            handler.close()
            root.removeHandler(handler)


def test_repeated_setup_replaces_handlers(tmp_path):
    root = setup_logging(log_dir=tmp_path)
    setup_logging(log_dir=tmp_path)
    try:
        assert len(root.handlers) == 3
        assert get_logger().name == "guidex"
        assert get_logger("mentor").name == "guidex.mentor"
        assert root.handlers[1].level == logging.ERROR
    finally:
        for handler in list(root.handlers):
            handler.close()
            root.removeHandler(handler)
