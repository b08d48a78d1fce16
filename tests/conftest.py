import json

import pytest

from tests.helpers import TEST_SETTINGS


@pytest.fixture
def settings():
    return json.loads(json.dumps(TEST_SETTINGS))
