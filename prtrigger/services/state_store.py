"""
Redis persistence for trigger configurations and tracked pull requests.

Layout, one hash field per job full name with a JSON value:
- <prefix>:trigger_configs   job -> TriggerConfig
- <prefix>:pull_requests     job -> {pull id -> PullRequestState}

Includes connection pooling and retry logic for resilience.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Dict, Optional, Tuple

import redis.asyncio as redis
from pydantic import TypeAdapter
from redis.asyncio.connection import ConnectionPool
from redis.exceptions import RedisError, ConnectionError, TimeoutError

from prtrigger.models.pull_request import PullRequestState
from prtrigger.models.trigger_config import TriggerConfig


logger = logging.getLogger(__name__)


PullRequestMap = Dict[int, PullRequestState]
RegistrySnapshot = Dict[str, PullRequestMap]
ConfigSnapshot = Dict[str, TriggerConfig]

_pull_request_map = TypeAdapter(PullRequestMap)


class StateStoreError(Exception):
    """Raised when the state store cannot be reached after retries."""
    pass


class RedisStateStore:
    """
    Redis-backed store for the trigger's persistent state.
    
    `save` writes configurations and registry together in one MULTI/EXEC
    transaction so a reader never sees one without the other.
    """
    
    TRIGGER_CONFIGS_KEY = "{prefix}:trigger_configs"
    PULL_REQUESTS_KEY = "{prefix}:pull_requests"
    
    def __init__(
        self,
        redis_url: Optional[str] = None,
        key_prefix: str = "prtrigger",
        max_retries: int = 3,
        retry_delay: float = 1.0,
        connection_timeout: int = 5
    ):
        """
        Initialize the state store.
        
        Args:
            redis_url: Redis connection URL. If None, will load from settings.
            key_prefix: Prefix of every key the store writes
            max_retries: Maximum number of attempts for transient errors
            retry_delay: Base delay between retries (exponential backoff)
            connection_timeout: Connection timeout in seconds
        """
        self._redis_url = redis_url
        self._pool: Optional[ConnectionPool] = None
        self._client: Optional[redis.Redis] = None
        self._max_retries = max_retries
        self._retry_delay = retry_delay
        self._connection_timeout = connection_timeout
        self.configs_key = self.TRIGGER_CONFIGS_KEY.format(prefix=key_prefix)
        self.pull_requests_key = self.PULL_REQUESTS_KEY.format(prefix=key_prefix)
    
    @property
    def client(self) -> Optional[redis.Redis]:
        return self._client
    
    async def initialize(self) -> None:
        """
        Initialize Redis connection pool.
        
        Raises:
            StateStoreError: If the connection fails
        """
        try:
            if not self._redis_url:
                from prtrigger.config import settings
                self._redis_url = settings.redis_url
            
            self._pool = ConnectionPool.from_url(
                self._redis_url,
                max_connections=10,
                decode_responses=True,
                socket_timeout=self._connection_timeout,
                socket_connect_timeout=self._connection_timeout
            )
            self._client = redis.Redis(connection_pool=self._pool)
            
            await self._client.ping()
            
            logger.info("Redis state store initialized successfully")
        
        except Exception as e:
            logger.error(f"Failed to initialize Redis state store: {e}")
            raise StateStoreError(f"Failed to connect to Redis: {e}") from e
    
    def use_client(self, client: redis.Redis) -> None:
        """Use an already connected client instead of building a pool."""
        self._client = client
    
    async def close(self) -> None:
        if self._client:
            await self._client.aclose()
        
        if self._pool:
            await self._pool.disconnect()
        
        logger.info("Redis state store closed")
    
    @asynccontextmanager
    async def _get_client(self):
        if not self._client:
            raise RuntimeError("State store not initialized. Call initialize() first.")
        
        yield self._client
    
    async def _retry_operation(self, operation, *args, **kwargs):
        """
        Execute Redis operation with retry logic.
        
        Raises:
            StateStoreError: If operation fails after all retries
        """
        last_error = None
        
        for attempt in range(self._max_retries):
            try:
                return await operation(*args, **kwargs)
            
            except (ConnectionError, TimeoutError) as e:
                last_error = e
                if attempt < self._max_retries - 1:
                    delay = self._retry_delay * (2 ** attempt)
                    logger.warning(
                        f"Redis operation failed (attempt {attempt + 1}/{self._max_retries}), "
                        f"retrying in {delay}s: {e}"
                    )
                    await asyncio.sleep(delay)
                else:
                    logger.error(f"Redis operation failed after {self._max_retries} attempts: {e}")
            
            except RedisError as e:
                # Non-transient errors, don't retry
                logger.error(f"Redis operation failed with non-transient error: {e}")
                raise StateStoreError(str(e)) from e
        
        raise StateStoreError(f"Redis operation failed after {self._max_retries} retries: {last_error}")
    
    # ========== Load ==========
    
    async def load(self) -> Optional[Tuple[ConfigSnapshot, RegistrySnapshot]]:
        """
        Load everything saved by a previous process.
        
        Returns:
            Tuple of (trigger configs by job, registry), or None on first run
        
        Raises:
            StateStoreError: If Redis cannot be read
        """
        async def _load():
            async with self._get_client() as client:
                raw_configs = await client.hgetall(self.configs_key)
                raw_pulls = await client.hgetall(self.pull_requests_key)
                return raw_configs, raw_pulls
        
        raw_configs, raw_pulls = await self._retry_operation(_load)
        
        if not raw_configs and not raw_pulls:
            logger.info("No saved trigger state found")
            return None
        
        configs = {
            job_name: TriggerConfig.model_validate_json(payload)
            for job_name, payload in raw_configs.items()
        }
        registry = {
            job_name: _pull_request_map.validate_json(payload)
            for job_name, payload in raw_pulls.items()
        }
        
        logger.info(
            f"Loaded trigger state for {len(configs)} job(s), "
            f"{sum(len(pulls) for pulls in registry.values())} pull request(s)"
        )
        return configs, registry
    
    # ========== Save ==========
    
    async def save(self, configs: ConfigSnapshot, registry: RegistrySnapshot) -> None:
        """
        Replace the saved state with the given snapshot.
        
        Raises:
            StateStoreError: If the transaction fails after retries
        """
        config_fields = {
            job_name: config.model_dump_json()
            for job_name, config in configs.items()
        }
        pull_fields = {
            job_name: _pull_request_map.dump_json(pulls).decode()
            for job_name, pulls in registry.items()
        }
        
        async def _save():
            async with self._get_client() as client:
                async with client.pipeline(transaction=True) as pipe:
                    pipe.delete(self.configs_key, self.pull_requests_key)
                    if config_fields:
                        pipe.hset(self.configs_key, mapping=config_fields)
                    if pull_fields:
                        pipe.hset(self.pull_requests_key, mapping=pull_fields)
                    await pipe.execute()
        
        await self._retry_operation(_save)
        logger.debug(f"Saved trigger state for {len(pull_fields)} job(s)")
    
    async def save_trigger_config(self, job_full_name: str, config: TriggerConfig) -> None:
        """
        Save the configuration of a single job.
        
        Raises:
            StateStoreError: If operation fails after retries
        """
        async def _save():
            async with self._get_client() as client:
                await client.hset(self.configs_key, job_full_name, config.model_dump_json())
        
        await self._retry_operation(_save)
        logger.debug(f"Saved trigger configuration for {job_full_name}")
    
    async def ping(self) -> bool:
        async def _ping():
            async with self._get_client() as client:
                return await client.ping()
        
        return await self._retry_operation(_ping)
