"""
Job trigger endpoints.

Binding a job, delivering already-parsed pull request events, polling
ticks and build completion callbacks.
"""

import logging
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel

from prtrigger.models.api_response import CompletionResponse, TriggerResponse
from prtrigger.models.event import BuildCompletion, PullRequestEvent
from prtrigger.models.job import Job
from prtrigger.models.pull_request import PullRequestState
from prtrigger.models.trigger_config import TriggerConfig
from prtrigger.services.orchestrator import TriggerDecision
from prtrigger.services.trigger import DispatchError
from prtrigger.services.trigger_service import (
    JobNotFoundError,
    TriggerService,
    get_trigger_service,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/jobs", tags=["jobs"])


class JobRegistration(BaseModel):
    """Request body binding a trigger to a job."""

    job: Job
    trigger: Optional[TriggerConfig] = None


class JobStatus(BaseModel):
    """Binding status of a job's trigger."""

    job_full_name: str
    bound: bool


def _not_found(e: JobNotFoundError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.put("/{job_full_name:path}/trigger", response_model=JobStatus)
async def register_job(
    job_full_name: str,
    registration: JobRegistration,
    service: TriggerService = Depends(get_trigger_service)
) -> JobStatus:
    """Bind (or rebind) the trigger of a job."""
    if registration.job.full_name != job_full_name:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Job full name {registration.job.full_name} does not match path {job_full_name}"
        )
    
    trigger = await service.register_job(registration.job, registration.trigger)
    return JobStatus(job_full_name=job_full_name, bound=trigger.is_bound)


@router.delete("/{job_full_name:path}/trigger", status_code=status.HTTP_204_NO_CONTENT)
async def unregister_job(
    job_full_name: str,
    service: TriggerService = Depends(get_trigger_service)
) -> None:
    """Unbind the trigger of a job."""
    try:
        await service.unregister_job(job_full_name)
    except JobNotFoundError as e:
        raise _not_found(e)


@router.post("/{job_full_name:path}/events", response_model=TriggerResponse)
async def handle_event(
    job_full_name: str,
    event: PullRequestEvent,
    wait: bool = True,
    service: TriggerService = Depends(get_trigger_service)
) -> TriggerResponse:
    """
    Decide on one pull request event and dispatch a build if warranted.
    
    With `wait=false` the event is handled in the background and the
    response only acknowledges it.
    
    Raises:
        HTTPException: 404 for an unbound job, 502 if the scheduler
            rejects the build
    """
    try:
        if not wait:
            service.submit_event(job_full_name, event)
            return TriggerResponse(
                status="accepted",
                message=f"Event for pull request #{event.pull_id} accepted for processing"
            )
        decision = await service.handle_event(job_full_name, event)
    except JobNotFoundError as e:
        raise _not_found(e)
    except DispatchError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))
    
    message = decision.reason or f"Build scheduled for pull request #{event.pull_id}"
    return TriggerResponse(
        status=decision.decision.value,
        message=message,
        handle=decision.handle,
    )


@router.post("/{job_full_name:path}/poll", response_model=List[TriggerDecision])
async def poll(
    job_full_name: str,
    service: TriggerService = Depends(get_trigger_service)
) -> List[TriggerDecision]:
    """Run one polling tick for a job."""
    try:
        return await service.poll(job_full_name)
    except JobNotFoundError as e:
        raise _not_found(e)


@router.post("/{job_full_name:path}/builds", response_model=CompletionResponse)
async def complete_build(
    job_full_name: str,
    completion: BuildCompletion,
    service: TriggerService = Depends(get_trigger_service)
) -> CompletionResponse:
    """Record a finished build of a pull request."""
    try:
        auto_close = await service.complete_build(job_full_name, completion)
    except JobNotFoundError as e:
        raise _not_found(e)
    
    return CompletionResponse(pull_id=completion.pull_id, auto_close=auto_close)


@router.get("/{job_full_name:path}/pull-requests", response_model=Dict[int, PullRequestState])
async def list_pull_requests(
    job_full_name: str,
    service: TriggerService = Depends(get_trigger_service)
) -> Dict[int, PullRequestState]:
    """Tracked pull requests of a job."""
    return dict(service.pull_requests(job_full_name))
