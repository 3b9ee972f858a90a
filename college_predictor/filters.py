import logging
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Tuple

from pydantic import ValidationError

from .errors import InvalidFilterError
from .models import FilterRequest
from .ranking import min_allowed_rank

logger = logging.getLogger(__name__)

EQ = "eq"
ICONTAINS = "icontains"
RANK_GTE = "rank_gte"


@dataclass(frozen=True)
class Predicate:
    field: str
    op: str
    value: Any


@dataclass(frozen=True)
class SortKey:
    field: str
    descending: bool = False
    # Sort by |sanitized field - distance_from| instead of the raw value
    distance_from: Optional[int] = None


@dataclass(frozen=True)
class Pagination:
    limit: int
    offset: int


@dataclass(frozen=True)
class CollegeQuery:
    predicates: Tuple[Predicate, ...]
    count_predicates: Tuple[Predicate, ...]
    sort_keys: Tuple[SortKey, ...]
    pagination: Optional[Pagination]
    min_allowed_rank: Optional[int] = None


def parse_filter_request(params: Mapping[str, Any]) -> FilterRequest:
    """
    Validate raw query parameters into a FilterRequest

    Args:
        params (Mapping): Query parameters, keyed by field name or alias

    Returns:
        FilterRequest: Validated request

    Raises:
        InvalidFilterError: Seat type missing, or a malformed rank or number
    """
    try:
        return FilterRequest.model_validate(dict(params))
    except ValidationError as e:
        failed = {error["loc"][0] for error in e.errors() if error["loc"]}
        logger.info(f"Rejected filter request, invalid fields: {sorted(map(str, failed))}")
        if "seatType" in failed or "seat_type" in failed:
            raise InvalidFilterError("Seat Type (Category) is required.") from e
        if "rank" in failed:
            raise InvalidFilterError("Invalid Rank provided.") from e
        raise InvalidFilterError(f"Invalid value for: {', '.join(sorted(map(str, failed)))}") from e


def build_query(request: FilterRequest) -> CollegeQuery:
    """Translate a filter request into predicates, sort keys and pagination."""
    predicates = [Predicate("seat_type", EQ, request.seat_type)]

    for field in ("year", "round", "quota", "gender", "institute"):
        value = getattr(request, field)
        if value is not None:
            predicates.append(Predicate(field, EQ, value))

    if request.program is not None:
        predicates.append(Predicate("program_name", ICONTAINS, request.program))

    floor = None
    if request.rank_active:
        floor = min_allowed_rank(request.rank)
        predicates.append(Predicate("closing_rank", RANK_GTE, floor))

    sort_keys = [SortKey("year", descending=True)]
    if request.round is None:
        sort_keys.append(SortKey("round", descending=True))
    if request.rank_active:
        sort_keys.append(SortKey("closing_rank", distance_from=request.rank))
    sort_keys.append(SortKey("institute"))
    sort_keys.append(SortKey("program_name"))

    pagination = None
    if not request.fetch_all:
        pagination = Pagination(limit=request.limit, offset=(request.page - 1) * request.limit)

    query = CollegeQuery(
        predicates=tuple(predicates),
        count_predicates=tuple(predicates),
        sort_keys=tuple(sort_keys),
        pagination=pagination,
        min_allowed_rank=floor,
    )
    logger.debug(f"Built query: {query}")
    return query
