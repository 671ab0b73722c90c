"""Trigger services package."""

from prtrigger.services.access_policy import AccessPolicy
from prtrigger.services.orchestrator import (
    Decision,
    OrganizationMembership,
    PullRequestEventSource,
    PullRequestOrchestrator,
    TriggerDecision,
    parse_repository_url,
)
from prtrigger.services.parameter_builder import build_parameters, commit_pin, merge_ref
from prtrigger.services.previous_build import find_previous_build
from prtrigger.services.registry import PullRequestRegistry
from prtrigger.services.scheduler import BuildScheduler, RedisBuildQueue
from prtrigger.services.state_store import RedisStateStore, StateStoreError
from prtrigger.services.trigger import DispatchError, PullRequestTrigger, dispatch
from prtrigger.services.trigger_service import (
    JobNotFoundError,
    TriggerService,
    get_trigger_service,
)

__all__ = [
    'AccessPolicy',
    'Decision',
    'OrganizationMembership',
    'PullRequestEventSource',
    'PullRequestOrchestrator',
    'TriggerDecision',
    'parse_repository_url',
    'build_parameters',
    'commit_pin',
    'merge_ref',
    'find_previous_build',
    'PullRequestRegistry',
    'BuildScheduler',
    'RedisBuildQueue',
    'RedisStateStore',
    'StateStoreError',
    'DispatchError',
    'PullRequestTrigger',
    'dispatch',
    'JobNotFoundError',
    'TriggerService',
    'get_trigger_service',
]
