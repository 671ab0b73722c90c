"""
Build scheduler boundary.

The trigger hands fully formed build requests to a scheduler and never
waits for the build itself. `RedisBuildQueue` queues requests on a Redis
list for the build workers to consume.
"""

import json
import logging
import uuid
from typing import Any, Protocol

import redis.asyncio as redis

from prtrigger.models.build_request import BuildRequest, QueuedBuild


logger = logging.getLogger(__name__)


class BuildScheduler(Protocol):
    """Anything that accepts build requests for queueing."""

    async def schedule_build(self, request: BuildRequest) -> Any:
        """Queue a build and return a handle for it; errors propagate."""
        ...


class RedisBuildQueue:
    """
    Build scheduler backed by a Redis list.
    
    Each request is pushed as JSON (right push for FIFO). The quiet period
    travels with the request; coalescing is up to the consumer.
    """
    
    BUILD_QUEUE_KEY = "{prefix}:build_queue"
    
    def __init__(self, client: redis.Redis, key_prefix: str = "prtrigger"):
        self._client = client
        self.queue_key = self.BUILD_QUEUE_KEY.format(prefix=key_prefix)
    
    async def schedule_build(self, request: BuildRequest) -> QueuedBuild:
        """
        Push a build request onto the queue. Not retried.
        
        Args:
            request: Build request to queue
        
        Returns:
            QueuedBuild handle with the request's queue position
        """
        queue_id = uuid.uuid4().hex
        payload = request.model_dump(mode="json")
        payload["queue_id"] = queue_id
        
        length = await self._client.rpush(self.queue_key, json.dumps(payload))
        
        logger.info(
            f"Queued build {queue_id} for {request.job_full_name} "
            f"pull request #{request.cause.pull_id} at {request.revision}"
        )
        
        return QueuedBuild(
            queue_id=queue_id,
            job_full_name=request.job_full_name,
            pull_id=request.cause.pull_id,
            position=length,
        )
    
    async def queue_length(self) -> int:
        return await self._client.llen(self.queue_key)
