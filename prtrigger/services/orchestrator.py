"""
Runtime orchestrator of a bound trigger.

Built when a trigger starts on a job and discarded when it stops. Turns
pull request events into authorization decisions, build causes and
dispatches, and keeps the job's tracked pull requests current.
"""

import asyncio
import itertools
import re
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Protocol, Set, Tuple

from pydantic import BaseModel

from prtrigger.models.cause import BuildCause
from prtrigger.models.event import EventKind, PullRequestEvent
from prtrigger.models.job import Job
from prtrigger.models.pull_request import BuildResult, PullRequestState
from prtrigger.services.registry import PullRequestRegistry
from prtrigger.utils.logging import get_logger, log_error_with_context, log_trigger_event

if TYPE_CHECKING:
    from prtrigger.services.trigger import PullRequestTrigger


logger = get_logger(__name__)

_REPOSITORY_URL_PATTERN = re.compile(
    r'^(?P<base>https?://[^/]+)/(?P<owner>[^/]+)/(?P<repo>[^/]+?)(?:\.git)?/?$'
)


class OrganizationMembership(Protocol):
    """Answers organization membership questions for authorization."""

    async def is_member(self, organization: str, login: str) -> bool:
        ...


class PullRequestEventSource(Protocol):
    """Supplies pending pull request events on each polling pass."""

    async def poll(self) -> List[PullRequestEvent]:
        ...


class Decision(str, Enum):
    """Outcome of one trigger decision."""

    SCHEDULED = "scheduled"
    IGNORED = "ignored"
    UNAUTHORIZED = "unauthorized"
    BRANCH_REJECTED = "branch_rejected"


class TriggerDecision(BaseModel):
    """What the orchestrator did with an event."""

    decision: Decision
    pull_id: int
    reason: str = ""
    handle: Optional[Any] = None


def parse_repository_url(url: str) -> Tuple[str, str, str]:
    """
    Parse a GitHub project URL.
    
    Args:
        url: Project URL, e.g. https://github.com/org/demo or .../demo.git
    
    Returns:
        Tuple of (owner, repository name, canonical repository URL)
    
    Raises:
        ValueError: If the URL is not a repository URL
    """
    match = _REPOSITORY_URL_PATTERN.match(url.strip())
    if not match:
        raise ValueError(
            f"Invalid GitHub project URL. Expected: https://{{host}}/{{owner}}/{{repo}}, Got: {url}"
        )
    
    owner = match.group('owner')
    repo = match.group('repo')
    return owner, repo, f"{match.group('base')}/{owner}/{repo}"


class PullRequestOrchestrator:
    """Decides and dispatches builds for the pull requests of one job."""
    
    def __init__(
        self,
        trigger: "PullRequestTrigger",
        job: Job,
        registry: PullRequestRegistry,
        event_source: Optional[PullRequestEventSource] = None,
        memberships: Optional[OrganizationMembership] = None
    ):
        """
        Initialize the orchestrator.
        
        Raises:
            ValueError: If the job has no usable GitHub project URL
        """
        if not job.github_project_url:
            raise ValueError(f"Job {job.full_name} has no GitHub project URL")
        
        self.trigger = trigger
        self.job = job
        self.registry = registry
        self.event_source = event_source
        self.memberships = memberships
        self.owner, self.repository, self.repo_url = parse_repository_url(job.github_project_url)
        self._tasks: Set[asyncio.Task] = set()
        # Arrival order of events; a pull request keeps the state of its
        # latest-arriving scheduled event
        self._arrivals = itertools.count()
        self._recorded: Dict[int, int] = {}
        self._log = logger.with_context(job_name=job.full_name)
    
    @property
    def pull_requests(self):
        """This job's slice of the registry."""
        return self.registry.get(self.job.full_name)
    
    async def organizations_of(self, login: str) -> Set[str]:
        """
        Look up which configured organizations the login belongs to.
        
        Lookup failures count as "not a member".
        """
        found = set()
        if self.memberships is None:
            return found
        
        for organization in self.trigger.access_policy.organizations():
            try:
                if await self.memberships.is_member(organization, login):
                    found.add(organization)
            except Exception as e:
                self._log.warning(
                    f"Membership lookup of {login} in {organization} failed, treating as non-member: {e}"
                )
        
        return found
    
    async def handle_event(self, event: PullRequestEvent) -> TriggerDecision:
        """
        Decide whether an event results in a build, and dispatch it if so.
        
        Args:
            event: Pull request event
        
        Returns:
            The decision taken
        
        Raises:
            DispatchError: If the scheduler rejects the build request; the
                tracked state of the pull request is left untouched
        """
        decision = await self._decide_and_dispatch(event)
        log_trigger_event(
            self._log,
            job_name=self.job.full_name,
            pull_id=event.pull_id,
            event_kind=event.kind.value,
            decision=decision.decision.value,
        )
        return decision
    
    async def _decide_and_dispatch(self, event: PullRequestEvent) -> TriggerDecision:
        arrival = next(self._arrivals)
        policy = self.trigger.access_policy
        config = self.trigger.config
        
        if event.kind == EventKind.NEW_COMMIT:
            actor = event.author_login
        else:
            actor = event.actor_login or event.author_login
        
        if event.kind == EventKind.ADD_TO_WHITELIST:
            if not policy.is_admin(actor):
                return self._ignored(event, f"{actor} is not an admin")
            if event.author_login and not policy.is_whitelisted(event.author_login):
                await self.trigger.add_to_whitelist(event.author_login)
        
        if event.kind == EventKind.NEW_COMMIT:
            if config.only_trigger_phrase:
                return self._ignored(event, "builds only run on the trigger phrase")
            tracked = self.pull_requests.get(event.pull_id)
            if tracked is not None and tracked.last_commit_sha == event.head_sha:
                return self._ignored(event, f"commit {event.head_sha} already seen")
        
        if not policy.is_branch_allowed(event.target_branch):
            return TriggerDecision(
                decision=Decision.BRANCH_REJECTED,
                pull_id=event.pull_id,
                reason=f"target branch {event.target_branch!r} is not allowed",
            )
        
        organizations: Set[str] = set()
        if not policy.is_actor_authorized(actor) and policy.organizations():
            organizations = await self.organizations_of(actor)
        
        if not policy.is_authorized(actor, organizations, event.target_branch):
            return TriggerDecision(
                decision=Decision.UNAUTHORIZED,
                pull_id=event.pull_id,
                reason=f"{actor} may not trigger builds",
            )
        
        cause = BuildCause(
            pull_id=event.pull_id,
            commit=event.head_sha,
            merged=event.merge,
            source_branch=event.source_branch,
            target_branch=event.target_branch,
            author_email=event.author_email,
            url=event.url,
            title=event.title,
            trigger_login=actor,
        )
        handle = await self.trigger.start_job(cause, event.repo_url or self.repo_url)
        
        async with self.registry.locked(self.job.full_name) as pulls:
            if arrival < self._recorded.get(event.pull_id, -1):
                self._log.debug(
                    f"Newer event already recorded for #{event.pull_id}, keeping its state"
                )
            else:
                self._recorded[event.pull_id] = arrival
                previous = pulls.get(event.pull_id) or PullRequestState()
                pulls[event.pull_id] = previous.model_copy(update={
                    "last_commit_sha": event.head_sha,
                    "last_result": BuildResult.PENDING,
                    "source_branch": event.source_branch,
                    "target_branch": event.target_branch,
                })
        await self.registry.save()
        
        return TriggerDecision(decision=Decision.SCHEDULED, pull_id=event.pull_id, handle=handle)
    
    def _ignored(self, event: PullRequestEvent, reason: str) -> TriggerDecision:
        self._log.debug(f"Ignoring event for #{event.pull_id}: {reason}")
        return TriggerDecision(decision=Decision.IGNORED, pull_id=event.pull_id, reason=reason)
    
    async def run(self) -> List[TriggerDecision]:
        """
        One polling pass over the event source.
        
        Events are handled one at a time; a failed dispatch is logged and
        the pass continues with the next event.
        """
        if self.trigger.config.use_webhooks:
            self._log.debug("Webhook delivery configured, skipping polling pass")
            return []
        if self.event_source is None:
            self._log.debug("No event source configured, nothing to poll")
            return []
        
        decisions = []
        for event in await self.event_source.poll():
            try:
                decisions.append(await self.handle_event(event))
            except Exception as e:
                log_error_with_context(
                    self._log,
                    f"Failed to handle event for pull request #{event.pull_id}",
                    e,
                    pull_id=event.pull_id,
                )
        
        return decisions
    
    def submit(self, event: PullRequestEvent) -> asyncio.Task:
        """
        Handle a pushed event in the background.
        
        Returns:
            The task handling the event; cancelled by `stop`
        """
        task = asyncio.create_task(self._handle_submitted(event))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task
    
    async def _handle_submitted(self, event: PullRequestEvent) -> Optional[TriggerDecision]:
        try:
            return await self.handle_event(event)
        except Exception as e:
            log_error_with_context(
                self._log,
                f"Error handling pushed event for pull request #{event.pull_id}",
                e,
                pull_id=event.pull_id,
            )
            return None
    
    async def stop(self) -> None:
        """Cancel pushed events still being handled."""
        pending = list(self._tasks)
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
            self._log.info(f"Cancelled {len(pending)} in-flight event(s)")
        self._tasks.clear()
