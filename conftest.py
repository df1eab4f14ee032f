import matplotlib

# no display in test runs
matplotlib.use("Agg")

import numpy as np
import pytest
from loguru import logger


@pytest.fixture
def rng():
    return np.random.default_rng(20240611)


@pytest.fixture
def toj_factors():
    return {
        "isInstructionNegated": [True, False],
        "soa": [-100, 0, 100],
        "sequenceLength": [1, 2, 5],
    }


@pytest.fixture
def log_messages():
    """Collect loguru records (level name, message) emitted during the test."""
    messages = []
    handler_id = logger.add(lambda m: messages.append((m.record["level"].name, m.record["message"])),
                            level="DEBUG")
    yield messages
    logger.remove(handler_id)
