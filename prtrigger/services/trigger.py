"""
Pull request trigger bound to a job.

Owns the job's trigger configuration and, while bound, the runtime
orchestrator. Also composes the dispatch path: parameters, previous build
lookup and submission to the build scheduler.
"""

from typing import Any, Optional

from prtrigger.models.build_request import BuildRequest
from prtrigger.models.cause import BuildCause
from prtrigger.models.event import BuildCompletion
from prtrigger.models.job import BuildRecord, Job
from prtrigger.models.pull_request import BuildResult, PullRequestState
from prtrigger.models.trigger_config import TriggerConfig
from prtrigger.services.access_policy import AccessPolicy
from prtrigger.services.orchestrator import (
    OrganizationMembership,
    PullRequestEventSource,
    PullRequestOrchestrator,
)
from prtrigger.services.parameter_builder import build_parameters
from prtrigger.services.previous_build import find_previous_build
from prtrigger.services.registry import PullRequestRegistry
from prtrigger.services.scheduler import BuildScheduler
from prtrigger.services.state_store import RedisStateStore
from prtrigger.utils.logging import get_logger, log_error_with_context


logger = get_logger(__name__)


class DispatchError(Exception):
    """Raised when the build scheduler does not accept a build request."""
    pass


async def dispatch(
    scheduler: BuildScheduler,
    job: Job,
    cause: BuildCause,
    repo_url: str
) -> Any:
    """
    Submit one build of a pull request to the scheduler.
    
    No deduplication and no retry: every call produces one submission.
    
    Args:
        scheduler: Build scheduler to submit to
        job: Job to build
        cause: Cause of the build
        repo_url: Canonical repository URL
    
    Returns:
        Whatever handle the scheduler returns
    
    Raises:
        DispatchError: If the scheduler raises
    """
    parameters, pin = build_parameters(job, cause, repo_url)
    previous = find_previous_build(job, cause.pull_id)
    
    request = BuildRequest(
        job_full_name=job.full_name,
        quiet_period=job.quiet_period,
        cause=cause,
        parameters=parameters,
        revision=pin,
        previous_build=previous,
    )
    
    try:
        return await scheduler.schedule_build(request)
    except Exception as e:
        log_error_with_context(
            logger,
            f"Failed to schedule build of {job.full_name} for pull request #{cause.pull_id}",
            e,
            job_name=job.full_name,
            pull_id=cause.pull_id,
        )
        raise DispatchError(
            f"Scheduler rejected build of {job.full_name} for pull request #{cause.pull_id}: {e}"
        ) from e


class PullRequestTrigger:
    """
    Binds a trigger configuration to a job.
    
    Unbound until `start` succeeds, Bound until `stop`. Only a bound
    trigger has an orchestrator.
    """
    
    def __init__(
        self,
        config: TriggerConfig,
        registry: PullRequestRegistry,
        scheduler: BuildScheduler,
        store: Optional[RedisStateStore] = None,
        event_source: Optional[PullRequestEventSource] = None,
        memberships: Optional[OrganizationMembership] = None,
        default_auto_close: bool = False
    ):
        self.config = config
        self.registry = registry
        self.scheduler = scheduler
        self.store = store
        self.event_source = event_source
        self.memberships = memberships
        self.default_auto_close = default_auto_close
        self.access_policy = AccessPolicy(config, persist=self._save_config)
        self.job: Optional[Job] = None
        self.orchestrator: Optional[PullRequestOrchestrator] = None
    
    @property
    def is_bound(self) -> bool:
        return self.orchestrator is not None
    
    def start(self, job: Job) -> bool:
        """
        Bind the trigger to a job.
        
        Calling it again replaces the orchestrator.
        
        Returns:
            True if the trigger is now bound
        """
        if not job.github_project_url:
            logger.info(f"GitHub project not set up, cannot start trigger for job {job.name}")
            return False
        
        try:
            orchestrator = self.create_orchestrator(job)
        except ValueError as e:
            log_error_with_context(logger, "Can't start trigger", e, job_name=job.full_name)
            return False
        
        self.job = job
        self.orchestrator = orchestrator
        logger.info("Starting trigger", extra={"job_name": job.full_name})
        return True
    
    def create_orchestrator(self, job: Job) -> PullRequestOrchestrator:
        return PullRequestOrchestrator(
            trigger=self,
            job=job,
            registry=self.registry,
            event_source=self.event_source,
            memberships=self.memberships,
        )
    
    async def stop(self) -> None:
        """Unbind the trigger. No-op while unbound."""
        if self.orchestrator is None:
            return
        
        await self.orchestrator.stop()
        self.orchestrator = None
        logger.info("Stopped trigger", extra={"job_name": self.job.full_name if self.job else None})
    
    async def run(self):
        """
        One polling tick: a polling pass, then a registry save.
        
        No-op while unbound.
        """
        if self.orchestrator is None:
            return []
        
        decisions = await self.orchestrator.run()
        await self.registry.save()
        return decisions
    
    async def start_job(self, cause: BuildCause, repo_url: str) -> Any:
        """Dispatch a build of the bound job."""
        if self.job is None:
            raise RuntimeError("Trigger is not bound to a job")
        return await dispatch(self.scheduler, self.job, cause, repo_url)
    
    async def add_to_whitelist(self, login: str) -> None:
        await self.access_policy.add_to_whitelist(login)
    
    async def _save_config(self, config: TriggerConfig) -> None:
        if self.store is None or self.job is None:
            return
        await self.store.save_trigger_config(self.job.full_name, config)
    
    def is_auto_close_failed_pull_requests(self) -> bool:
        if self.config.auto_close_failed_pull_requests is None:
            return self.default_auto_close
        return self.config.auto_close_failed_pull_requests
    
    async def on_build_completed(self, completion: BuildCompletion) -> bool:
        """
        Record a finished build of a pull request.
        
        The build is prepended to the job's history and the registry is
        saved.
        
        Returns:
            True if the pull request should be closed because its build
            failed and auto-close is enabled
        """
        if self.job is None:
            raise RuntimeError("Trigger is not bound to a job")
        
        self.job.builds.insert(0, BuildRecord(
            number=completion.number,
            parameters=completion.parameters,
            build_data=completion.build_data,
        ))
        
        async with self.registry.locked(self.job.full_name) as pulls:
            previous = pulls.get(completion.pull_id) or PullRequestState()
            pulls[completion.pull_id] = previous.model_copy(update={
                "last_result": completion.result,
                "last_build_number": completion.number,
            })
        
        await self.registry.save()
        
        auto_close = (
            completion.result == BuildResult.FAILURE
            and self.is_auto_close_failed_pull_requests()
        )
        logger.info(
            f"Build #{completion.number} for pull request #{completion.pull_id} finished: {completion.result.value}",
            extra={"job_name": self.job.full_name, "pull_id": completion.pull_id, "auto_close": auto_close}
        )
        return auto_close
