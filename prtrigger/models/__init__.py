"""Data models for the pull request trigger."""

from .api_response import CompletionResponse, TriggerResponse
from .build_request import BuildRequest, QueuedBuild
from .cause import BuildCause
from .event import BuildCompletion, EventKind, PullRequestEvent
from .job import BuildData, BuildRecord, Job, ParameterDefinition, ParameterValue
from .pull_request import BuildResult, PullRequestState
from .trigger_config import BranchPattern, TriggerConfig
from .types import OptionalBool, OptionalStr

__all__ = [
    # Configuration models
    "BranchPattern",
    "TriggerConfig",
    # Host job models
    "Job",
    "ParameterDefinition",
    "ParameterValue",
    "BuildRecord",
    "BuildData",
    # Trigger decision models
    "BuildCause",
    "EventKind",
    "PullRequestEvent",
    "BuildCompletion",
    # Scheduling models
    "BuildRequest",
    "QueuedBuild",
    # Tracked state models
    "BuildResult",
    "PullRequestState",
    # API response models
    "TriggerResponse",
    "CompletionResponse",
    # Normalizing field types
    "OptionalStr",
    "OptionalBool",
]
