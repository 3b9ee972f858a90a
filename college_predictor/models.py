import math
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _blank_to_none(value: Any) -> Any:
    if isinstance(value, str) and not value.strip():
        return None
    return value


class FilterRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    seat_type: str = Field(..., alias="seatType", min_length=1, description="Seat Type (e.g., OPEN, OBC-NCL)")
    rank: Optional[int] = Field(None, gt=0, description="Candidate rank")
    year: Optional[int] = Field(None, description="Admission year")
    round: Optional[int] = Field(None, description="Counseling round number")
    quota: Optional[str] = Field(None, description="Quota (e.g., AI, HS, OS)")
    gender: Optional[str] = Field(None, description="Gender pool")
    institute: Optional[str] = Field(None, description="Exact institute name")
    program: Optional[str] = Field(None, description="Partial academic program name")
    page: int = Field(1, ge=1)
    limit: int = Field(25, ge=1)
    fetch_all: bool = Field(False, alias="fetchAll")

    @field_validator(
        "seat_type", "rank", "year", "round", "quota", "gender", "institute", "program",
        mode="before",
    )
    @classmethod
    def blank_is_missing(cls, value):
        return _blank_to_none(value)

    @field_validator("page", "limit", mode="before")
    @classmethod
    def blank_uses_default(cls, value, info):
        if _blank_to_none(value) is None:
            return cls.model_fields[info.field_name].default
        return value

    @field_validator("fetch_all", mode="before")
    @classmethod
    def only_true_fetches_all(cls, value):
        # Anything other than the literal "true" means a paginated request
        if isinstance(value, bool):
            return value
        return isinstance(value, str) and value.strip() == "true"

    @property
    def institute_pinned(self) -> bool:
        return self.institute is not None

    @property
    def rank_active(self) -> bool:
        """Rank drives admissibility and ordering only when no institute is pinned."""
        return self.rank is not None and not self.institute_pinned


class AdmissionRecord(BaseModel):
    institute: Optional[str] = None
    program_name: Optional[str] = None
    quota: Optional[str] = None
    seat_type: Optional[str] = None
    gender: Optional[str] = None
    opening_rank: Optional[str] = None
    closing_rank: Optional[str] = None
    year: int
    round: int

    @field_validator("opening_rank", "closing_rank", mode="before")
    @classmethod
    def rank_as_text(cls, value):
        # Ranks stay as stored text, numeric values are rendered without a fraction
        if value is None:
            return None
        if isinstance(value, float):
            if math.isnan(value):
                return None
            if value.is_integer():
                return str(int(value))
        return str(value)


class RankedResult(AdmissionRecord):
    id: str


class ResultPage(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    results: List[RankedResult]
    total_count: int = Field(..., alias="totalCount")
    current_page: int = Field(..., alias="currentPage")
    total_pages: int = Field(..., alias="totalPages")


class TrendRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    institute: str = Field(..., min_length=1)
    program: str = Field(..., min_length=1)
    quota: str = Field(..., min_length=1)
    seat_type: str = Field(..., alias="seatType", min_length=1)
    gender: str = Field(..., min_length=1)
    round: int

    @field_validator("institute", "program", "quota", "seat_type", "gender", "round", mode="before")
    @classmethod
    def blank_is_missing(cls, value):
        return _blank_to_none(value)


class TrendPoint(BaseModel):
    year: int
    opening_rank: Optional[str] = None
    closing_rank: Optional[str] = None


class TrendResponse(BaseModel):
    trend: List[TrendPoint]
    plot_data: Optional[Dict[str, Any]] = None
