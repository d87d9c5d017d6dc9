import asyncio
import logging

import pytest

from bunkerdesk.utils.logging_utils import log_user_action, timing_logger


def test_timing_logger_wraps_sync_functions(caplog):
    @timing_logger("sum_numbers")
    def add(a, b):
        return a + b

    with caplog.at_level(logging.INFO, logger="bunkerdesk"):
        assert add(2, 3) == 5

    assert add.__name__ == "add"
    assert "sum_numbers" in caplog.text


def test_timing_logger_wraps_coroutines_and_reraises(caplog):
    @timing_logger("failing_job")
    async def boom():
        raise RuntimeError("smtp down")

    with caplog.at_level(logging.INFO, logger="bunkerdesk"):
        with pytest.raises(RuntimeError):
            asyncio.run(boom())

    assert "failing_job" in caplog.text
    assert "smtp down" in caplog.text


def test_user_action_outside_request(caplog):
    with caplog.at_level(logging.INFO, logger="bunkerdesk"):
        log_user_action("created", "contact", 12, user_id=3)

    assert "'entity_id': 12" in caplog.text
    assert "'user_id': 3" in caplog.text
