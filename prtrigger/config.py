"""
Application configuration management.
"""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""
    
    # Redis
    redis_url: str = "redis://localhost:6379/0"
    redis_max_retries: int = 3
    redis_retry_delay: float = 1.0
    state_key_prefix: str = "prtrigger"
    
    # Trigger defaults applied when a job's trigger leaves them unset
    auto_close_failed_pull_requests: bool = False
    
    # Application
    log_level: str = "INFO"
    
    class Config:
        env_file = ".env"
        case_sensitive = False


# Global settings instance
settings = Settings()
