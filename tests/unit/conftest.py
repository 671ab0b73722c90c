"""
Shared fixtures for trigger unit tests.
"""

import asyncio
from typing import AsyncGenerator, List

import fakeredis
import pytest

from prtrigger.models.build_request import BuildRequest
from prtrigger.models.cause import BuildCause
from prtrigger.models.job import Job, ParameterDefinition
from prtrigger.models.trigger_config import TriggerConfig
from prtrigger.services.registry import PullRequestRegistry
from prtrigger.services.state_store import RedisStateStore


class RecordingScheduler:
    """Build scheduler double that records every request it accepts."""

    def __init__(self, fail: bool = False, delay: float = 0.0):
        self.requests: List[BuildRequest] = []
        self.fail = fail
        self.delay = delay

    async def schedule_build(self, request: BuildRequest):
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail:
            raise RuntimeError("queue is full")
        self.requests.append(request)
        return f"handle-{len(self.requests)}"


@pytest.fixture
async def fake_redis() -> AsyncGenerator[fakeredis.FakeAsyncRedis, None]:
    """Fake async Redis client, flushed after each test."""
    client = fakeredis.FakeAsyncRedis(decode_responses=True)
    yield client
    await client.flushdb()
    await client.aclose()


@pytest.fixture
def state_store(fake_redis) -> RedisStateStore:
    """State store wired to fakeredis."""
    store = RedisStateStore(redis_url="redis://localhost:6379/0", key_prefix="test")
    store.use_client(fake_redis)
    return store


@pytest.fixture
def registry() -> PullRequestRegistry:
    return PullRequestRegistry()


@pytest.fixture
def scheduler() -> RecordingScheduler:
    return RecordingScheduler()


@pytest.fixture
def job() -> Job:
    """The demo job used across tests."""
    return Job(
        name="demo",
        full_name="demo",
        github_project_url="https://github.com/org/demo/",
        quiet_period=5,
        parameter_definitions=[
            ParameterDefinition(name="TARGET_ENV", default_value="staging"),
            ParameterDefinition(name="sha1", default_value="master"),
        ],
    )


@pytest.fixture
def trigger_config() -> TriggerConfig:
    return TriggerConfig(
        admin_list="Alice bob",
        whitelist="carol",
        orgs_list="acme",
    )


@pytest.fixture
def cause() -> BuildCause:
    return BuildCause(
        pull_id=7,
        commit="abc123",
        merged=False,
        source_branch="feature",
        target_branch="master",
        author_email=None,
        url=None,
    )
