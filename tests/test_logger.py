# File: tests/test_logger.py
import logging

import pytest

from spa_settle.logger import configure, get_logger


@pytest.fixture()
def project_logger():
    lg = logging.getLogger("SpaSettle")
    handlers, level, propagate = lg.handlers[:], lg.level, lg.propagate
    yield lg
    for handler in lg.handlers:
        if handler not in handlers:
            handler.close()
    lg.handlers[:] = handlers
    lg.setLevel(level)
    lg.propagate = propagate


def test_get_logger_children():
    assert get_logger().name == "SpaSettle"
    assert get_logger("manager").name == "SpaSettle.manager"
    assert get_logger("manager").getChild("fetch").name == "SpaSettle.manager.fetch"


def test_configure_replaces_handlers(project_logger, tmp_path):
    configure(level="DEBUG")
    configure(level="WARNING", log_file=tmp_path / "spa.log")

    assert project_logger.level == logging.WARNING
    assert len(project_logger.handlers) == 2
    assert not project_logger.propagate

    get_logger("engine").warning("route timed out")
    for handler in project_logger.handlers:
        handler.flush()
    assert "route timed out" in (tmp_path / "spa.log").read_text(encoding="utf-8")


def test_configure_appends_handlers(project_logger):
    configure()
    configure(replace_handlers=False)
    assert len(project_logger.handlers) == 2
