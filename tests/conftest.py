import httpx
import pytest

from dune_analytics_mcp.client import DuneClient
from dune_analytics_mcp.config import DuneSettings

BASE_URL = "https://dune.test/api/v1"
API_PATH = "/api/v1"


class SleepRecorder:
    """Stands in for asyncio.sleep and remembers every requested delay."""

    def __init__(self):
        self.delays = []

    async def __call__(self, delay):
        self.delays.append(delay)


def rows_response(rows):
    return httpx.Response(200, json={"result": {"rows": rows}})


@pytest.fixture
def settings():
    return DuneSettings(api_key="test-key", base_url=BASE_URL)


@pytest.fixture
def make_client(settings):
    def factory(handler):
        return DuneClient(settings, transport=httpx.MockTransport(handler))

    return factory


@pytest.fixture
def sleep_recorder():
    return SleepRecorder()
