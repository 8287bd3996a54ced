import importlib
from pathlib import Path

import pytest

import target_gap_bot.config as config_mod


@pytest.fixture(autouse=True)
def _reload_after():
    # Runs teardown after monkeypatch has restored the environment
    yield
    importlib.reload(config_mod)


_ENV = [
    "STOCK_CODES",
    "SLACK_TOKEN",
    "SLACK_CHANNEL_ID",
    "CRON_SCHEDULE",
    "HEADLESS_MODE",
    "PRICE_GAP_PERCENTAGE",
    "MIN_MARKET_CAP_BILLIONS",
    "ALERT_BATCH_SIZE",
    "SKIP_LIST_FILE",
]


def _reload(monkeypatch, **env):
    for name in _ENV:
        monkeypatch.delenv(name, raising=False)
    for name, value in env.items():
        monkeypatch.setenv(name, value)
    return importlib.reload(config_mod)


def test_defaults(monkeypatch):
    cfg = _reload(monkeypatch).Settings()
    assert cfg.stock_codes == []
    assert cfg.cron_schedule == "0 7 * * *"
    assert cfg.headless is True
    assert cfg.price_gap_percentage is None
    assert cfg.min_market_cap_billions == 0
    assert cfg.alert_batch_size == 5
    assert cfg.skip_list_file == Path("skip-list.txt")
    assert cfg.slack_configured is False


def test_env_values(monkeypatch):
    cfg = _reload(
        monkeypatch,
        STOCK_CODES=" 005930, 000660 ,,035420",
        SLACK_TOKEN="xoxb-1",
        SLACK_CHANNEL_ID="C1",
        CRON_SCHEDULE="30 8 * * 1-5",
        PRICE_GAP_PERCENTAGE="15.5",
        MIN_MARKET_CAP_BILLIONS="5,000",
    ).Settings()
    assert cfg.stock_codes == ["005930", "000660", "035420"]
    assert cfg.cron_schedule == "30 8 * * 1-5"
    assert cfg.price_gap_percentage == 15.5
    assert cfg.min_market_cap_billions == 5000
    assert cfg.slack_configured is True


def test_headless_only_disabled_by_false(monkeypatch):
    assert _reload(monkeypatch, HEADLESS_MODE="FALSE").Settings().headless is False
    assert _reload(monkeypatch, HEADLESS_MODE="0").Settings().headless is True


def test_bad_numbers_fall_back(monkeypatch):
    cfg = _reload(
        monkeypatch,
        PRICE_GAP_PERCENTAGE="lots",
        MIN_MARKET_CAP_BILLIONS="big",
        ALERT_BATCH_SIZE="0",
    ).Settings()
    assert cfg.price_gap_percentage is None
    assert cfg.min_market_cap_billions == 0
    assert cfg.alert_batch_size == 1


def test_blank_cron_uses_default(monkeypatch):
    assert _reload(monkeypatch, CRON_SCHEDULE="").Settings().cron_schedule == "0 7 * * *"


def test_non_finite_threshold_disables_analysis(monkeypatch):
    for raw in ("nan", "NaN", "inf", "-inf"):
        cfg = _reload(monkeypatch, PRICE_GAP_PERCENTAGE=raw).Settings()
        assert cfg.price_gap_percentage is None
