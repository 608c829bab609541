"""Root conftest: shared fixtures."""

import os

# Tests never talk to OpenAI
os.environ.pop("OPENAI_API_KEY", None)

import pytest

from gateway import ChatGateway
from tests.fakes import FakeServer, StubGenerator


@pytest.fixture
def server():
    return FakeServer()


@pytest.fixture
def generator():
    return StubGenerator()


@pytest.fixture
async def gateway(server, generator):
    gw = ChatGateway.create(server, generator=generator, delay=0, timeout=1)
    yield gw
    await gw.aclose()
