"""
Registry of tracked pull requests, per job.

Lives for the whole process: loaded once at startup and saved after every
scheduled event, polling pass and build completion. Mutations of one job's
slice are serialized by a per-job lock; different jobs never wait on each
other.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable, Dict, List, Optional

from prtrigger.models.pull_request import PullRequestState
from prtrigger.models.trigger_config import TriggerConfig
from prtrigger.services.state_store import (
    ConfigSnapshot,
    PullRequestMap,
    RedisStateStore,
    RegistrySnapshot,
)


logger = logging.getLogger(__name__)


class PullRequestRegistry:
    """
    Mapping of job full name -> pull request id -> tracked state.
    
    Entries are never expired. Renaming a job orphans its entries under the
    old name.
    """
    
    def __init__(
        self,
        store: Optional[RedisStateStore] = None,
        configs: Optional[Callable[[], ConfigSnapshot]] = None
    ):
        """
        Initialize the registry.
        
        Args:
            store: State store used by `save`; without one `save` is a no-op
            configs: Returns the trigger configurations saved alongside the
                registry
        """
        self._store = store
        self._configs = configs or dict
        self._jobs: RegistrySnapshot = {}
        self._locks: Dict[str, asyncio.Lock] = {}
        self._save_lock = asyncio.Lock()
    
    def load(self, snapshot: RegistrySnapshot) -> None:
        """Replace the in-memory registry with a loaded snapshot."""
        self._jobs = {name: dict(pulls) for name, pulls in snapshot.items()}
    
    def get(self, job_full_name: str) -> PullRequestMap:
        """
        Get the pull requests tracked for a job.
        
        An unknown job name gets a new empty mapping, which is stored and
        returned on every later call.
        """
        return self._jobs.setdefault(job_full_name, {})
    
    def job_names(self) -> List[str]:
        return list(self._jobs)
    
    def _lock_for(self, job_full_name: str) -> asyncio.Lock:
        return self._locks.setdefault(job_full_name, asyncio.Lock())
    
    @asynccontextmanager
    async def locked(self, job_full_name: str) -> AsyncIterator[PullRequestMap]:
        """
        Hold the job's writer lock and yield its pull request mapping.
        
        Usage:
            async with registry.locked("demo") as pulls:
                pulls[7] = state
        """
        async with self._lock_for(job_full_name):
            yield self.get(job_full_name)
    
    async def put(self, job_full_name: str, pull_id: int, state: PullRequestState) -> None:
        async with self.locked(job_full_name) as pulls:
            pulls[pull_id] = state
    
    def snapshot(self) -> RegistrySnapshot:
        return {
            name: {pull_id: state.model_copy() for pull_id, state in pulls.items()}
            for name, pulls in self._jobs.items()
        }
    
    async def save(self) -> bool:
        """
        Persist the registry together with the trigger configurations.
        
        Best-effort: a failure is logged and reported through the return
        value, never raised.
        
        Returns:
            True if the state was written
        """
        if self._store is None:
            return False
        
        async with self._save_lock:
            configs: Dict[str, TriggerConfig] = {
                name: config.model_copy(deep=True)
                for name, config in self._configs().items()
            }
            snapshot = self.snapshot()
            try:
                await self._store.save(configs, snapshot)
            except Exception as e:
                logger.error(f"Failed to save pull request registry: {e}", exc_info=True)
                return False
        
        return True
