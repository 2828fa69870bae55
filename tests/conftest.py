"""Shared fixtures: a recording mock transport in place of the network."""

from collections.abc import Iterator

import httpx
import pytest

from requester.client import Requester
from requester.metrics import RequesterMetrics
from tests.helpers.transport import RecordingHandler


@pytest.fixture(autouse=True)
def reset_metrics() -> Iterator[None]:
    """Give every test a fresh metrics singleton."""
    RequesterMetrics.reset()
    yield
    RequesterMetrics.reset()


@pytest.fixture
def handler() -> RecordingHandler:
    """Recording handler answering 200 with an empty body."""
    return RecordingHandler()


@pytest.fixture
def client(handler: RecordingHandler) -> Iterator[httpx.Client]:
    """HTTP client routed to the recording handler."""
    with httpx.Client(transport=httpx.MockTransport(handler)) as client:
        yield client


@pytest.fixture
def requester(client: httpx.Client) -> Requester:
    """Requester sharing the mock client."""
    return Requester(client=client)
