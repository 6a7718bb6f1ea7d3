"""Base model for API payloads and pipeline context."""

from pydantic import BaseModel, ConfigDict


class Model(BaseModel):
    """Immutable model; fields the API adds later are ignored."""

    model_config = ConfigDict(frozen=True, extra="ignore")
