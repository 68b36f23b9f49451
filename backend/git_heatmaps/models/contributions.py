from datetime import date
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, SecretStr, model_validator

from ..core.errors import UpstreamFailure


class Provider(str, Enum):
    GITHUB = "github"
    GITLAB = "gitlab"

    @property
    def tag(self) -> str:
        """Short namespace used in cache keys."""
        return "gh" if self is Provider.GITHUB else "gl"


class DayCount(BaseModel):
    model_config = ConfigDict(frozen=True)

    day: date
    count: int = Field(ge=0)


class ProviderSeries(BaseModel):
    """One provider's daily counts, ascending by day with at most one entry per day."""

    model_config = ConfigDict(frozen=True)

    provider: Provider
    identity: str
    days: tuple[DayCount, ...] = ()

    @model_validator(mode="after")
    def _check_ordering(self) -> "ProviderSeries":
        for prev, cur in zip(self.days, self.days[1:]):
            if cur.day <= prev.day:
                raise ValueError(
                    f"{self.provider.value} series is not strictly ascending at {cur.day.isoformat()}"
                )
        return self

    @property
    def total(self) -> int:
        return sum(d.count for d in self.days)


class UnifiedDay(BaseModel):
    model_config = ConfigDict(frozen=True)

    day: date
    counts: dict[Provider, int]
    total: int


class SourceError(BaseModel):
    model_config = ConfigDict(frozen=True)

    provider: Provider
    message: str


class SourceQuery(BaseModel):
    identity: str | None = None
    credential: SecretStr | None = None


class ContributionQuery(BaseModel):
    sources: dict[Provider, SourceQuery] = Field(default_factory=dict)
    from_day: date
    to_day: date

    @model_validator(mode="after")
    def _check_range(self) -> "ContributionQuery":
        if self.from_day > self.to_day:
            raise ValueError(
                f"from_day {self.from_day.isoformat()} is after to_day {self.to_day.isoformat()}"
            )
        return self


class AggregatedResult(BaseModel):
    series: list[UnifiedDay]
    errors: list[SourceError] = Field(default_factory=list)
    sources_requested: int = 0
    sources_succeeded: int = 0
    cached_sources: list[Provider] = Field(default_factory=list)

    @property
    def all_failed(self) -> bool:
        """True when sources were requested and none of them produced data."""
        return self.sources_requested > 0 and self.sources_succeeded == 0

    @property
    def partial(self) -> bool:
        return bool(self.errors) and self.sources_succeeded > 0

    @property
    def total(self) -> int:
        return sum(d.total for d in self.series)

    def raise_for_upstream(self) -> None:
        if self.all_failed:
            details = "; ".join(f"{e.provider.value}: {e.message}" for e in self.errors)
            raise UpstreamFailure(f"Failed to fetch contributions: {details}")
