import json
import logging

from target_gap_bot.config import Settings
from target_gap_bot.logging_utils import JsonFormatter, PlainFormatter, setup_logging


def _record(msg="item_ok code=%s", args=("005930",), **extra):
    record = logging.LogRecord("pipeline", logging.INFO, __file__, 1, msg, args, None)
    record.__dict__.update(extra)
    return record


def test_json_formatter_merges_extras():
    data = json.loads(JsonFormatter().format(_record(run="abc")))
    assert data["msg"] == "item_ok code=005930"
    assert data["level"] == "INFO"
    assert data["name"] == "pipeline"
    assert data["run"] == "abc"


def test_plain_formatter_single_line():
    line = PlainFormatter().format(_record())
    assert "pipeline: item_ok code=005930" in line
    assert "\n" not in line


def test_setup_logging_writes_json_file(tmp_path, restore_root_logging):
    settings = Settings(log_dir=tmp_path / "logs", log_level="INFO")
    setup_logging(settings=settings)
    logging.getLogger("pipeline").warning("item_failed code=%s", "005930")
    for handler in logging.getLogger().handlers:
        handler.flush()
    lines = (tmp_path / "logs" / "bot.jsonl").read_text(encoding="utf-8").splitlines()
    assert json.loads(lines[-1])["msg"] == "item_failed code=005930"
    assert (tmp_path / "logs" / "errors.log").read_text(encoding="utf-8")
