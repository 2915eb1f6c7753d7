from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings configuration class for the node health check."""

    # Node Configuration
    rpc_url: Optional[str] = None
    expected_chain_id: int = 1
    node_name: str = "eth-node"

    # RPC Configuration
    http_timeout: float = 10.0  # Per-request timeout in seconds

    # Health Check Configuration
    max_attempts: int = 3
    retry_delay: float = 2.0  # Fixed delay between attempts in seconds
    fail_fast_on_mismatch: bool = False

    # Logging Configuration
    debug: bool = False

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="NODECHECK_",
        env_file_encoding="utf-8",
    )


settings = Settings()
