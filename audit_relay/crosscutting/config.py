"""
Name: Application Configuration (Settings)

Responsibilities:
  - Centralized, typed configuration using pydantic-settings
  - Validate environment variables at startup
  - Provide safe defaults (batch size K=10, idle flush disabled)

Collaborators:
  - container.py: builds stores, publishers and consumers from these values
  - worker/consumer.py: listener/partition layout and HTTP port
  - api/main.py: pool sizing at startup

Constraints:
  - No business logic, pure configuration

Notes:
  - Uses pydantic-settings for env parsing and validation
  - Singleton via lru_cache
"""

from functools import lru_cache

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Attributes:
        database_url: PostgreSQL connection string (primary store + audit store)
        redis_url: Redis connection string (durable message log, Redis Streams)
        app_env: Application environment (development/test/production)
        log_level: Root log level for the JSON logger
        log_json: Emit JSON lines (default: True)
        audit_topic: Logical stream for audit events
        exception_topic: Logical stream for exception events
        stream_partitions: Partition streams per topic (default: 3)
        consumer_group: Redis consumer group name
        consumer_name: Consumer name inside the group (defaults to hostname-pid)
        consumer_batch_size: Commit granularity K (default: 10)
        consumer_max_poll_records: Max entries per XREADGROUP (default: 500)
        consumer_block_ms: XREADGROUP block timeout (default: 500)
        consumer_flush_interval_seconds: Idle flush of a sub-K remainder (0 = off)
        audit_excluded_collections: Collections never audited (comma-separated)
        default_actor: Username recorded when no actor is carried
        anonymous_actor: Username set by the HTTP boundary when no header is sent
        worker_http_port: Health/metrics port of the consumer worker
    """

    # Required for runtime (tests use in-memory adapters)
    database_url: str = ""
    redis_url: str = ""

    # Environment
    app_env: str = "development"

    # Logging
    log_level: str = "INFO"
    log_json: bool = True

    # Message log (Redis Streams)
    audit_topic: str = "audit-events"
    exception_topic: str = "exception-events"
    stream_partitions: int = 3
    consumer_group: str = "audit-consumer-group"
    consumer_name: str = ""
    consumer_max_poll_records: int = 500
    consumer_block_ms: int = 500

    # Batch consumer
    consumer_batch_size: int = 10
    consumer_flush_interval_seconds: float = 0.0

    # Interceptor
    audit_excluded_collections: str = "audit_logs,exception_logs"
    default_actor: str = "system"
    anonymous_actor: str = "anonymous"

    # Database - Connection Pool
    db_pool_min_size: int = 2
    db_pool_max_size: int = 10
    db_statement_timeout_ms: int = 30000  # 30 seconds

    # Worker
    worker_http_port: int = 8001

    @field_validator(
        "consumer_batch_size",
        "stream_partitions",
        "consumer_max_poll_records",
    )
    @classmethod
    def must_be_positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("value must be greater than 0")
        return v

    @field_validator("consumer_block_ms")
    @classmethod
    def block_ms_must_be_non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("consumer_block_ms must be >= 0")
        return v

    @field_validator("consumer_flush_interval_seconds")
    @classmethod
    def flush_interval_must_be_non_negative(cls, v: float) -> float:
        if v < 0:
            raise ValueError("consumer_flush_interval_seconds must be >= 0")
        return v

    def get_excluded_collections(self) -> frozenset[str]:
        """Parse comma-separated collection names into a set."""
        return frozenset(
            name.strip()
            for name in self.audit_excluded_collections.split(",")
            if name.strip()
        )

    def is_production(self) -> bool:
        return self.app_env.strip().lower() == "production"

    def is_test(self) -> bool:
        return self.app_env.strip().lower() in {"test", "testing", "ci"}

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",  # Ignore unknown env vars
    )


@lru_cache
def get_settings() -> Settings:
    """
    Get singleton Settings instance.

    Raises:
        ValidationError: If env vars are invalid
    """
    return Settings()
