import logging

from hubs_backup.infrastructure.logger import (
    LOGGER_NAME, close_log_file, configure_log_file, logger
)


def test_logger_name():
    assert logger is logging.getLogger(LOGGER_NAME)


def test_configure_log_file_truncates_previous_content(tmp_path):
    path = tmp_path / "host" / "me@example.com" / "backup.log"
    path.parent.mkdir(parents=True)
    path.write_text("stale line\n")

    try:
        configure_log_file(path)
        logger.info("fresh line")
    finally:
        close_log_file()

    content = path.read_text(encoding="utf-8")
    assert "stale line" not in content
    assert "fresh line" in content


def test_configure_log_file_replaces_earlier_handler(tmp_path):
    first, second = tmp_path / "first.log", tmp_path / "second.log"

    try:
        configure_log_file(first)
        configure_log_file(second)
        logger.info("only in second")
    finally:
        close_log_file()

    assert "only in second" not in first.read_text(encoding="utf-8")
    assert "only in second" in second.read_text(encoding="utf-8")
    assert not [h for h in logger.handlers if isinstance(h, logging.FileHandler)]


def test_debug_records_are_kept_out_of_the_file(tmp_path):
    path = tmp_path / "backup.log"
    previous = logger.level
    logger.setLevel(logging.DEBUG)

    try:
        configure_log_file(path)
        logger.debug("noisy")
    finally:
        close_log_file()
        logger.setLevel(previous)

    assert "noisy" not in path.read_text(encoding="utf-8")
