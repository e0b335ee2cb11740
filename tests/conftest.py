"""
Shared fixtures: a running fake platform and clients bound to it.
"""

import aiohttp
import pytest
import pytest_asyncio
from aiohttp.test_utils import TestServer

from huly_sdk import ClientConfig, HulyClient
from tests.fake_platform import EMAIL, PASSWORD, WORKSPACE, FakePlatform


@pytest_asyncio.fixture
async def platform():
    """Start a fake platform on a random local port."""
    fake = FakePlatform()
    server = TestServer(fake.app)
    await server.start_server()
    fake.base_url = str(server.make_url("/")).rstrip("/")
    yield fake
    await fake.close_sockets()
    await server.close()


@pytest.fixture
def config(platform):
    """Client configuration pointing at the fake platform."""
    return ClientConfig(
        base_url=platform.base_url,
        email=EMAIL,
        password=PASSWORD,
        workspace=WORKSPACE,
        hello_timeout=1.0,
        tx_timeout=2.0,
    )


@pytest_asyncio.fixture
async def client(config):
    """Unauthenticated client; operations authenticate lazily."""
    huly = HulyClient(config)
    yield huly
    await huly.close()


@pytest_asyncio.fixture
async def http():
    """Bare aiohttp session for socket tests."""
    async with aiohttp.ClientSession() as session:
        yield session
