"""Client configuration with environment variable loading.

Pydantic-based configuration for the chat streaming client.
Values come from the environment (or a .env file) with local defaults.
"""

import os
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator

# Load environment variables from .env file
load_dotenv()

DEFAULT_STORAGE_PATH = Path.home() / ".ragchat" / "storage.json"


class ClientConfig(BaseModel):
    """Configuration for the chat streaming client.

    Attributes:
        api_base_url: Base URL of the RAG backend.
        chat_path: Path of the streaming chat endpoint.
        timeout: Network timeout in seconds for connect and each read.
        storage_path: JSON file holding the session id and message history.
    """

    api_base_url: str = Field(
        default_factory=lambda: os.getenv("API_BASE_URL", "http://localhost:8000"),
        description="Base URL of the RAG backend",
    )
    chat_path: str = Field(
        default_factory=lambda: os.getenv("CHAT_API_PATH", "/api/chat"),
        description="Path of the streaming chat endpoint",
    )
    timeout: float = Field(
        default_factory=lambda: float(os.getenv("CHAT_TIMEOUT", "120.0")),
        gt=0.0,
        description="Network timeout in seconds",
    )
    storage_path: Path = Field(
        default_factory=lambda: Path(os.getenv("CHAT_STORAGE_PATH", str(DEFAULT_STORAGE_PATH))),
        description="Durable storage file for session state",
    )

    @field_validator("api_base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Normalize the base URL so paths can be appended."""
        v = v.strip()
        if not v:
            raise ValueError("API base URL required. Set API_BASE_URL in .env")
        return v.rstrip("/")

    @field_validator("chat_path")
    @classmethod
    def validate_chat_path(cls, v: str) -> str:
        """Require an absolute endpoint path."""
        v = v.strip()
        if not v.startswith("/"):
            raise ValueError("chat_path must start with '/'")
        return v

    @property
    def chat_url(self) -> str:
        return f"{self.api_base_url}{self.chat_path}"


def get_client_config() -> ClientConfig:
    """Create client configuration from environment.

    Returns:
        Configured ClientConfig instance.

    Raises:
        ValueError: If a configured value is invalid.
    """
    return ClientConfig()
