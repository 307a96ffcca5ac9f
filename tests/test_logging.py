import json

import liahub.main  # noqa: F401  module-level loggers are created on import
from liahub.core.logging import configure_logging, get_logger


def test_logger_emits_json_with_module_name(capsys):
    configure_logging("INFO")
    logger = get_logger("liahub.tests")

    logger.info("record_created", record_id="r1")

    line = capsys.readouterr().out.strip().splitlines()[-1]
    event = json.loads(line)
    assert event["event"] == "record_created"
    assert event["record_id"] == "r1"
    assert event["logger_name"] == "liahub.tests"
    assert event["level"] == "info"


def test_level_filtering(capsys):
    configure_logging("WARNING")
    logger = get_logger("liahub.tests.quiet")

    logger.info("dropped")
    logger.warning("kept")

    out = capsys.readouterr().out
    assert "dropped" not in out
    assert "kept" in out
    configure_logging("INFO")
