import logging

import pytest

from page_oracle.logger import TRACE, ColoredFormatter, setup_logging


@pytest.fixture(autouse=True)
def restore_logging():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    noisy = {name: logging.getLogger(name).level for name in ("web3", "urllib3")}
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
    for name, noisy_level in noisy.items():
        logging.getLogger(name).setLevel(noisy_level)


def test_debug_quiets_web3():
    setup_logging("debug")

    assert logging.getLogger().level == logging.DEBUG
    assert logging.getLogger("web3").level == logging.WARNING


def test_trace_level_is_supported():
    setup_logging("TRACE")

    assert logging.getLogger().level == TRACE
    assert logging.getLogger("urllib3").level == TRACE


def test_unknown_level_falls_back_to_info(monkeypatch):
    monkeypatch.setenv("LOG_LEVEL", "chatty")

    setup_logging()

    assert logging.getLogger().level == logging.INFO


def test_colored_formatter_leaves_record_untouched():
    record = logging.LogRecord("page_oracle", logging.ERROR, __file__, 1, "boom", None, None)
    formatter = ColoredFormatter(fmt="%(levelname)s %(message)s", use_color=True)

    output = formatter.format(record)

    assert output == "\033[31m\033[1mERROR\033[0m boom"
    assert record.levelname == "ERROR"
    assert ColoredFormatter(fmt="%(levelname)s").format(record) != "ERROR"
    assert ColoredFormatter(fmt="%(levelname)s", use_color=False).format(record) == "ERROR"
