"""Configuration for the request client."""

from typing import Annotated

import httpx
from pydantic import BaseModel, ConfigDict, Field, field_validator

from requester.constants import DEFAULT_TIMEOUT_SECONDS, DEFAULT_USER_AGENT


class RequesterConfig(BaseModel):
    """Configuration for the HTTP client shared by request builders.

    Timeouts, redirects and default headers are transport concerns; the
    builder never applies them itself.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    timeout_seconds: Annotated[float, Field(gt=0.0, le=300.0)] = (
        DEFAULT_TIMEOUT_SECONDS
    )
    follow_redirects: bool = False
    user_agent: Annotated[str, Field(min_length=1, max_length=500)] = (
        DEFAULT_USER_AGENT
    )
    headers: dict[str, str] = Field(
        default_factory=dict, description="Headers sent with every request"
    )

    @field_validator("headers")
    @classmethod
    def validate_no_auth_headers(cls, v: dict[str, str]) -> dict[str, str]:
        """Ensure no credentials are stored in config."""
        forbidden = {"authorization", "cookie", "x-api-key"}
        for key in v:
            if key.lower() in forbidden:
                msg = (
                    f"Header '{key}' must not be stored in config; "
                    "set it on the request instead"
                )
                raise ValueError(msg)
        return v

    def create_client(self) -> httpx.Client:
        """Create an HTTP client from this configuration.

        Returns:
            New httpx.Client owned by the caller.
        """
        return httpx.Client(
            timeout=self.timeout_seconds,
            follow_redirects=self.follow_redirects,
            headers={"User-Agent": self.user_agent, **self.headers},
        )
