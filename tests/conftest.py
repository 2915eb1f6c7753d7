import sys

import pytest
from loguru import logger


@pytest.fixture(autouse=True)
def reset_logger():
    # The CLI points loguru at whatever sys.stderr is during the test
    yield
    logger.remove()
    logger.add(sys.stderr, level="DEBUG")


class RecordingSleep:
    def __init__(self):
        self.delays = []

    async def __call__(self, delay):
        self.delays.append(delay)


@pytest.fixture
def sleep():
    return RecordingSleep()
