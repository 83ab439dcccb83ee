"""
Re-useable fixtures etc. for tests

See https://docs.pytest.org/en/7.1.x/reference/fixtures.html#conftest-py-sharing-fixtures-across-multiple-files
"""

from __future__ import annotations

import pytest
from loguru import logger


@pytest.fixture
def loguru_messages():
    """
    Messages logged with loguru while the test runs, as `"{level}|{message}"`
    """
    # loguru doesn't go through the standard library's logging,
    # so pytest's caplog doesn't see its messages
    messages = []
    handler_id = logger.add(
        lambda msg: messages.append(
            f"{msg.record['level'].name}|{msg.record['message']}"
        ),
        level="DEBUG",
    )

    yield messages

    logger.remove(handler_id)
