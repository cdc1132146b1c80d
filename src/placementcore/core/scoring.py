"""Employability score computation."""

from __future__ import annotations

from dataclasses import asdict, dataclass

from ..schemas import StudentProfileSnapshot

MAX_SCORE = 100


@dataclass(frozen=True)
class ScoreConfig:
    """Weighting policy. Change ``version`` whenever a weight changes."""

    version: str = "v1"
    profile_points: int = 30
    points_per_skill: int = 3
    skill_cap: int = 10
    points_per_certificate: int = 4
    certificate_cap: int = 5
    points_per_education: int = 5
    education_cap: int = 2
    resume_points: int = 10

    def __post_init__(self) -> None:
        for name, value in asdict(self).items():
            if name != "version" and value < 0:
                raise ValueError(f"{name} must be non-negative, got {value}")


@dataclass(slots=True)
class ScoreBreakdown:
    """Per-dimension points behind a score."""

    version: str
    profile: int
    skills: int
    certificates: int
    education: int
    resume: int
    total: int


class ScoreEngine:
    """Pure function from a profile snapshot to a 0-100 score.

    Each dimension is capped independently, then the sum is clamped, so the
    score never decreases when any single input grows.
    """

    def __init__(self, *, config: ScoreConfig | None = None) -> None:
        self._config = config or ScoreConfig()

    @property
    def version(self) -> str:
        return self._config.version

    def score(self, snapshot: StudentProfileSnapshot) -> int:
        return self.breakdown(snapshot).total

    def breakdown(self, snapshot: StudentProfileSnapshot) -> ScoreBreakdown:
        cfg = self._config
        profile = cfg.profile_points if snapshot.profile_completed else 0
        skills = min(self._skill_count(snapshot.skills), cfg.skill_cap) * cfg.points_per_skill
        certificates = min(snapshot.certificates, cfg.certificate_cap) * cfg.points_per_certificate
        education = min(snapshot.education_entries, cfg.education_cap) * cfg.points_per_education
        resume = cfg.resume_points if snapshot.has_resume else 0

        total = profile + skills + certificates + education + resume
        return ScoreBreakdown(
            version=cfg.version,
            profile=profile,
            skills=skills,
            certificates=certificates,
            education=education,
            resume=resume,
            total=max(0, min(total, MAX_SCORE)),
        )

    @staticmethod
    def _skill_count(skills: frozenset[str]) -> int:
        return len({skill.strip().casefold() for skill in skills if skill and skill.strip()})
