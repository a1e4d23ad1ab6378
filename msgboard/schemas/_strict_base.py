"""Strict schema baselines shared by message board DTOs."""

from pydantic import BaseModel, ConfigDict


class StrictModel(BaseModel):
    """Response DTO base: unknown fields are a programming error."""

    model_config = ConfigDict(extra="forbid", validate_assignment=True)


class StrictRequestModel(StrictModel):
    """Request DTO base that rejects unexpected body fields with a 422."""

    model_config = ConfigDict(extra="forbid", validate_assignment=True)
