"""Chat API schemas."""

from __future__ import annotations

from pydantic import BaseModel, Field

from launchpad.models.chat import ChatAction


class ChatRequest(BaseModel):
    message: str = Field(min_length=1)


class ApiKeyRequest(BaseModel):
    api_key: str


class AIStatusResponse(BaseModel):
    available: bool
    model: str
    provider: str
    instructions: str


class DiagnosisItem(BaseModel):
    issue: str
    solution: str
    confidence: float
    actions: list[ChatAction] = []


class DiagnosesResponse(BaseModel):
    has_errors: bool
    message: str
    count: int
    diagnoses: list[DiagnosisItem]
