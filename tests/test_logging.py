import json
import logging

from iris_mobility.utils.logging import JsonFormatter, configure_logging


def test_json_formatter_merges_extra_fields():
    record = logging.LogRecord("iris_mobility.data.loader", logging.INFO, __file__, 1,
                               "Aggregated %d vehicles", (3,), None)
    record.range = "weekly"
    payload = json.loads(JsonFormatter().format(record))
    assert payload["msg"] == "Aggregated 3 vehicles"
    assert payload["level"] == "INFO"
    assert payload["logger"] == "iris_mobility.data.loader"
    assert payload["range"] == "weekly"


def test_configure_logging_replaces_its_handler():
    logger = configure_logging("info")
    configure_logging("debug", json_format=True)
    ours = [h for h in logger.handlers if getattr(h, "_iris_handler", False)]
    assert len(ours) == 1
    assert isinstance(ours[0].formatter, JsonFormatter)
    assert logger.level == logging.DEBUG
    logger.removeHandler(ours[0])
