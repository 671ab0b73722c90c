"""
Process-wide trigger service.

Owns the state store, the pull request registry and one trigger per
registered job. Loaded once at startup, saved on shutdown and after every
state-changing operation.
"""

import asyncio
import logging
from typing import Callable, Dict, List, Optional

from prtrigger.models.event import BuildCompletion, PullRequestEvent
from prtrigger.models.job import Job
from prtrigger.models.pull_request import PullRequestState
from prtrigger.models.trigger_config import TriggerConfig
from prtrigger.services.orchestrator import (
    OrganizationMembership,
    PullRequestEventSource,
    TriggerDecision,
)
from prtrigger.services.registry import PullRequestRegistry
from prtrigger.services.scheduler import BuildScheduler, RedisBuildQueue
from prtrigger.services.state_store import RedisStateStore
from prtrigger.services.trigger import PullRequestTrigger


logger = logging.getLogger(__name__)


EventSourceFactory = Callable[[Job, TriggerConfig], Optional[PullRequestEventSource]]


class JobNotFoundError(Exception):
    """Raised when a job has no bound trigger."""
    pass


class TriggerService:
    """Registry of bound triggers, keyed by job full name."""
    
    def __init__(
        self,
        store: RedisStateStore,
        scheduler: Optional[BuildScheduler] = None,
        memberships: Optional[OrganizationMembership] = None,
        event_source_factory: Optional[EventSourceFactory] = None,
        default_auto_close: bool = False,
        key_prefix: str = "prtrigger"
    ):
        self.store = store
        self.scheduler = scheduler
        self.memberships = memberships
        self.event_source_factory = event_source_factory
        self.default_auto_close = default_auto_close
        self.key_prefix = key_prefix
        self.configs: Dict[str, TriggerConfig] = {}
        self.triggers: Dict[str, PullRequestTrigger] = {}
        self.registry = PullRequestRegistry(store, configs=lambda: self.configs)
    
    async def initialize(self, connect: bool = True) -> None:
        """
        Connect the store and load the saved state.
        
        Args:
            connect: Open the store's connection pool first; pass False when
                the store was given a client already
        """
        if connect:
            await self.store.initialize()
        
        loaded = await self.store.load()
        if loaded is not None:
            configs, registry = loaded
            self.configs.update(configs)
            self.registry.load(registry)
        
        if self.scheduler is None:
            self.scheduler = RedisBuildQueue(self.store.client, key_prefix=self.key_prefix)
        
        logger.info(f"Trigger service initialized with {len(self.configs)} saved configuration(s)")
    
    async def register_job(
        self,
        job: Job,
        config: Optional[TriggerConfig] = None
    ) -> PullRequestTrigger:
        """
        Bind a new trigger to a job, replacing any previous one.
        
        Args:
            job: Job to bind
            config: New configuration; the saved one (or defaults) when None
        
        Returns:
            The new trigger, bound unless the job lacks a GitHub project
        """
        name = job.full_name
        if config is None:
            config = self.configs.get(name) or TriggerConfig()
        
        previous = self.triggers.pop(name, None)
        if previous is not None:
            await previous.stop()
        
        event_source = self.event_source_factory(job, config) if self.event_source_factory else None
        trigger = PullRequestTrigger(
            config=config,
            registry=self.registry,
            scheduler=self.scheduler,
            store=self.store,
            event_source=event_source,
            memberships=self.memberships,
            default_auto_close=self.default_auto_close,
        )
        trigger.start(job)
        
        self.configs[name] = config
        self.triggers[name] = trigger
        await self.registry.save()
        return trigger
    
    async def unregister_job(self, job_full_name: str) -> None:
        """Stop a job's trigger. Its configuration and tracked pull requests stay saved."""
        trigger = self.triggers.pop(job_full_name, None)
        if trigger is None:
            raise JobNotFoundError(f"No trigger registered for job {job_full_name}")
        await trigger.stop()
    
    def get_trigger(self, job_full_name: str) -> PullRequestTrigger:
        """
        Get the bound trigger of a job.
        
        Raises:
            JobNotFoundError: If the job is unknown or its trigger is unbound
        """
        trigger = self.triggers.get(job_full_name)
        if trigger is None or not trigger.is_bound:
            raise JobNotFoundError(f"No bound trigger for job {job_full_name}")
        return trigger
    
    async def handle_event(self, job_full_name: str, event: PullRequestEvent) -> TriggerDecision:
        trigger = self.get_trigger(job_full_name)
        return await trigger.orchestrator.handle_event(event)
    
    def submit_event(self, job_full_name: str, event: PullRequestEvent) -> asyncio.Task:
        """Hand an event to the job's orchestrator for background handling."""
        return self.get_trigger(job_full_name).orchestrator.submit(event)
    
    async def poll(self, job_full_name: str) -> List[TriggerDecision]:
        return await self.get_trigger(job_full_name).run()
    
    async def complete_build(self, job_full_name: str, completion: BuildCompletion) -> bool:
        return await self.get_trigger(job_full_name).on_build_completed(completion)
    
    def pull_requests(self, job_full_name: str) -> Dict[int, PullRequestState]:
        return self.registry.get(job_full_name)
    
    async def close(self) -> None:
        """Stop every trigger, save, and close the store."""
        for trigger in list(self.triggers.values()):
            await trigger.stop()
        self.triggers.clear()
        await self.registry.save()
        await self.store.close()
        logger.info("Trigger service closed")


_service: Optional[TriggerService] = None


def get_trigger_service() -> TriggerService:
    """
    Get or create the global trigger service instance.
    
    Returns:
        TriggerService built from settings
    """
    global _service
    if _service is None:
        from prtrigger.config import settings
        store = RedisStateStore(
            redis_url=settings.redis_url,
            key_prefix=settings.state_key_prefix,
            max_retries=settings.redis_max_retries,
            retry_delay=settings.redis_retry_delay,
        )
        _service = TriggerService(
            store,
            default_auto_close=settings.auto_close_failed_pull_requests,
            key_prefix=settings.state_key_prefix,
        )
    return _service
