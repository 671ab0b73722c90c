"""
Unit tests for the pull request registry.
"""

import asyncio

import pytest
from unittest.mock import AsyncMock

from prtrigger.models.pull_request import BuildResult, PullRequestState
from prtrigger.models.trigger_config import TriggerConfig
from prtrigger.services.registry import PullRequestRegistry


class TestRegistryAccess:
    """Test lookups and updates."""
    
    def test_unknown_job_gets_empty_mapping(self, registry):
        pulls = registry.get("never-seen")
        
        assert pulls == {}
        assert registry.get("never-seen") is pulls
        assert "never-seen" in registry.job_names()
    
    @pytest.mark.asyncio
    async def test_put_is_visible_to_later_get(self, registry):
        state = PullRequestState(last_commit_sha="abc123", source_branch="feature")
        
        await registry.put("demo", 7, state)
        
        assert registry.get("demo")[7] == state
    
    @pytest.mark.asyncio
    async def test_jobs_are_independent(self, registry):
        await registry.put("demo", 7, PullRequestState(last_commit_sha="a"))
        await registry.put("other", 7, PullRequestState(last_commit_sha="b"))
        
        assert registry.get("demo")[7].last_commit_sha == "a"
        assert registry.get("other")[7].last_commit_sha == "b"
    
    @pytest.mark.asyncio
    async def test_concurrent_updates_are_not_lost(self, registry):
        """Read-modify-write under the job lock survives interleaving."""
        async def bump(pull_id):
            async with registry.locked("demo") as pulls:
                current = pulls.get(pull_id) or PullRequestState()
                await asyncio.sleep(0)
                pulls[pull_id] = current.model_copy(update={"last_build_number": (current.last_build_number or 0) + 1})
        
        await asyncio.gather(*(bump(pull_id) for pull_id in [1, 2] * 10))
        
        pulls = registry.get("demo")
        assert pulls[1].last_build_number == 10
        assert pulls[2].last_build_number == 10
    
    def test_load_replaces_state(self, registry):
        registry.get("stale")
        registry.load({"demo": {7: PullRequestState(last_commit_sha="abc")}})
        
        assert registry.job_names() == ["demo"]
        assert registry.get("demo")[7].last_commit_sha == "abc"


class TestRegistrySave:
    """Test best-effort persistence."""
    
    @pytest.mark.asyncio
    async def test_save_without_store_is_noop(self, registry):
        assert await registry.save() is False
    
    @pytest.mark.asyncio
    async def test_save_writes_configs_and_registry(self):
        store = AsyncMock()
        configs = {"demo": TriggerConfig(whitelist="carol")}
        registry = PullRequestRegistry(store, configs=lambda: configs)
        await registry.put("demo", 7, PullRequestState(last_result=BuildResult.SUCCESS))
        
        assert await registry.save() is True
        
        saved_configs, saved_registry = store.save.await_args.args
        assert saved_configs["demo"].whitelist == "carol"
        assert saved_registry["demo"][7].last_result == BuildResult.SUCCESS
    
    @pytest.mark.asyncio
    async def test_save_failure_is_not_raised(self):
        store = AsyncMock()
        store.save.side_effect = RuntimeError("redis down")
        registry = PullRequestRegistry(store)
        await registry.put("demo", 7, PullRequestState())
        
        assert await registry.save() is False
        assert 7 in registry.get("demo")
