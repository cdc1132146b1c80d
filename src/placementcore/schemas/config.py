"""Pydantic configuration schema for CLI YAML input."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .identity import Role


class RegistrySettings(BaseModel):
    student_approver: Role | None = None
    allow_recruiter_invites: bool | None = None

    model_config = ConfigDict(extra="forbid")


class ScoringSettings(BaseModel):
    version: str | None = None
    profile_points: int | None = Field(default=None, ge=0)
    points_per_skill: int | None = Field(default=None, ge=0)
    skill_cap: int | None = Field(default=None, ge=0)
    points_per_certificate: int | None = Field(default=None, ge=0)
    certificate_cap: int | None = Field(default=None, ge=0)
    points_per_education: int | None = Field(default=None, ge=0)
    education_cap: int | None = Field(default=None, ge=0)
    resume_points: int | None = Field(default=None, ge=0)

    model_config = ConfigDict(extra="forbid")


class AppConfig(BaseModel):
    registry: RegistrySettings = Field(default_factory=RegistrySettings)
    scoring: ScoringSettings = Field(default_factory=ScoringSettings)

    def to_settings(self) -> dict[str, Any]:
        settings: dict[str, Any] = {}
        registry_settings = self.registry.model_dump(mode="json", exclude_none=True)
        if registry_settings:
            settings["registry"] = registry_settings
        scoring_settings = self.scoring.model_dump(exclude_none=True)
        if scoring_settings:
            settings["scoring"] = scoring_settings
        return settings


def load_config(raw: Any) -> AppConfig:
    if not isinstance(raw, dict):
        raise ValidationError.from_exception_data(
            "AppConfig",
            [{"type": "dict_type", "loc": ("config",), "input": raw}],
        )
    return AppConfig.model_validate(raw)
