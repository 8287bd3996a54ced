import logging
from datetime import datetime
from zoneinfo import ZoneInfo

import pytest

KST = ZoneInfo("Asia/Seoul")


@pytest.fixture
def kst_clock():
    """Clock fixed at Tuesday 2025-03-11 07:00 KST (not a reset day)."""
    moment = datetime(2025, 3, 11, 7, 0, tzinfo=KST)
    return lambda: moment


@pytest.fixture
def restore_root_logging():
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
