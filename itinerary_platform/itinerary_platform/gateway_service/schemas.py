from typing import Optional

from pydantic import BaseModel, field_validator


class Credentials(BaseModel):
    # Missing or null fields become "" so the service reports them uniformly
    username: str = ""
    password: str = ""

    @field_validator("username", "password", mode="before")
    @classmethod
    def null_as_empty(cls, value):
        return "" if value is None else value


class MessageResponse(BaseModel):
    message: str


class ErrorResponse(BaseModel):
    error: str


class ReadinessResponse(BaseModel):
    status: str
    database: str
    reason: Optional[str] = None
