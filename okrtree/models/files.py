"""
File models for okrtree.

Models representing the structure of JSON files in the state directory.
"""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field

from okrtree.constants import (
    DEFAULT_API_BASE_URL,
    DEFAULT_FALLBACK_ROOT_ID,
    DEFAULT_LOG_LEVEL,
    DEFAULT_MAX_TREE_DEPTH,
    DEFAULT_REQUEST_TIMEOUT,
)

from .base import User


class SessionFile(BaseModel):
    """Model for session.json file.

    Holds the bearer token and the last known user snapshot. The snapshot is
    only a fallback for when the profile endpoint is unreachable.
    """

    token: Optional[str] = None
    user: Optional[User] = None
    saved_at: datetime = Field(default_factory=datetime.now)


class ConfigFile(BaseModel):
    """Model for config.json file."""

    schema_version: str = "0.1.0"

    api_base_url: str = DEFAULT_API_BASE_URL
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    max_tree_depth: int = Field(DEFAULT_MAX_TREE_DEPTH, ge=1)
    fallback_root_id: Optional[Any] = DEFAULT_FALLBACK_ROOT_ID
    log_level: str = DEFAULT_LOG_LEVEL
