"""Configuration module for agenthub-server using pydantic-settings."""

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class AgentHubSettings(BaseSettings):
    """Main configuration settings for agenthub-server.

    All settings can be overridden via environment variables with the AGENTHUB_ prefix.
    For example, AGENTHUB_RELAY_READ_TIMEOUT will override the relay_read_timeout setting.
    """

    # Server
    host: str = "127.0.0.1"
    port: int = 8080

    # Routing
    orchestrator_working_directory: str = "/tmp/orchestrator"
    default_working_directory: str | None = None

    # Local coding-agent subprocess
    claude_executable: str = "claude"
    claude_permission_mode: str = "bypassPermissions"
    command_prefix: str = "/"
    process_terminate_timeout: float = 5.0

    # Remote relay
    relay_read_timeout: float = 30.0
    relay_connect_timeout: float = 10.0

    # Orchestrator completion provider
    orchestrator_provider: Literal["anthropic", "ollama"] = "anthropic"
    orchestrator_model: str = "claude-sonnet-4-20250514"
    orchestrator_max_tokens: int = 4000
    anthropic_api_key: str | None = None
    ollama_host: str = "http://localhost:11434"

    # Plan execution
    max_parallel_steps: int | None = 8
    auto_execute_plans: bool = False

    # Streaming
    send_connection_ack: bool = True

    # CORS
    cors_origins: list[str] = Field(default_factory=lambda: ["*"])

    # Logging
    log_level: str = "INFO"

    model_config = SettingsConfigDict(env_prefix="AGENTHUB_")
