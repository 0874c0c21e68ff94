from typing import Any

from pydantic import BaseModel, Field


class ResponseInput(BaseModel):
    answer: Any = None
    preference: Any = None
    importance: str | float | None = None


class UserSnapshot(BaseModel):
    user_id: str
    submitted: bool = False
    responses: dict[str, ResponseInput] = Field(default_factory=dict)


class DryRunRequest(BaseModel):
    users: list[UserSnapshot] = Field(default_factory=list)
    config_overrides: dict[str, Any] = Field(default_factory=dict)
    include_pair_scores: bool = False
    workers: int | None = Field(default=None, ge=1)


class CompareRequest(BaseModel):
    users: list[UserSnapshot] = Field(default_factory=list)
    baseline_overrides: dict[str, Any] = Field(default_factory=dict)
    candidate_overrides: dict[str, Any] = Field(default_factory=dict)


class DryRunResponse(BaseModel):
    matches: list[dict[str, Any]]
    unmatched: list[dict[str, Any]]
    diagnostics: dict[str, Any]
    pair_scores: list[dict[str, Any]] | None = None


def snapshot_payloads(users: list[UserSnapshot]) -> list[dict[str, Any]]:
    payloads: list[dict[str, Any]] = []
    for user in users:
        responses = {qid: raw.model_dump() for qid, raw in user.responses.items()}
        payloads.append({"user_id": user.user_id, "submitted": user.submitted, "responses": responses})
    return payloads
