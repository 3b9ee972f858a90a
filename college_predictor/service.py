import json
import logging
import math
import re
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

import plotly.graph_objs as go
from pydantic import ValidationError

from .errors import InvalidFilterError, RetrievalError
from .filters import EQ, Predicate, SortKey, build_query
from .models import (
    AdmissionRecord,
    FilterRequest,
    RankedResult,
    ResultPage,
    TrendPoint,
    TrendRequest,
    TrendResponse,
)
from .ranking import rank_candidates, sanitize_rank
from .store import CutoffStore

logger = logging.getLogger(__name__)

# Option type -> record field
OPTION_FIELDS = {
    "years": "year",
    "rounds": "round",
    "quotas": "quota",
    "seatTypes": "seat_type",
    "genders": "gender",
    "institutes": "institute",
    "programs": "program_name",
}

_NON_ALNUM_RUN = re.compile(r"[^a-z0-9]+")


def make_record_id(record: AdmissionRecord) -> str:
    """
    Deterministic id for a cutoff entry.

    Example: "IIT Bombay", "Computer Science (4 Years)", "AI", "OPEN",
    "Gender-Neutral", 2023, 6 -> "iit-bombay-computer-science-4-years-ai-open-gender-neutral-2023-6"
    """
    parts = (
        record.institute,
        record.program_name,
        record.quota,
        record.seat_type,
        record.gender,
        record.year,
        record.round,
    )
    raw = "-".join("" if part is None else str(part) for part in parts).lower()
    return _NON_ALNUM_RUN.sub("-", raw).strip("-")


def assemble_page(
    records: Sequence[AdmissionRecord],
    request: FilterRequest,
    total_count: int,
) -> ResultPage:
    """
    Wrap ordered records into the paginated response envelope

    Args:
        records (Sequence[AdmissionRecord]): Records in final order
        request (FilterRequest): Request the records answer
        total_count (int): Number of matches before pagination, ignored for fetch-all

    Returns:
        ResultPage: Results with identity keys and page totals
    """
    results = [RankedResult(id=make_record_id(record), **record.model_dump()) for record in records]
    if request.fetch_all:
        return ResultPage(results=results, total_count=len(results), current_page=1, total_pages=1)
    return ResultPage(
        results=results,
        total_count=total_count,
        current_page=request.page,
        total_pages=math.ceil(total_count / request.limit),
    )


def match_colleges(request: FilterRequest, store: Optional[CutoffStore]) -> ResultPage:
    """
    Find the cutoff entries a candidate can realistically reach

    Args:
        request (FilterRequest): Validated filters
        store (CutoffStore): Loaded cutoff data

    Returns:
        ResultPage: Matching entries, relevance ordered when a rank is given
    """
    if store is None:
        raise RetrievalError("Cutoff data is not loaded")

    query = build_query(request)
    total_count = 0
    if query.pagination is not None:
        total_count = store.count_matching(query.count_predicates)

    records = store.fetch_matching(query.predicates, query.sort_keys, query.pagination)

    if request.rank_active and records:
        records = rank_candidates(records, request.rank)

    logger.info(
        f"Matched {len(records)} rows for seat_type={request.seat_type} "
        f"rank={request.rank} floor={query.min_allowed_rank}"
    )
    return assemble_page(records, request, total_count)


def get_filter_options(types: Iterable[str], store: Optional[CutoffStore]) -> Dict[str, List[Any]]:
    """Distinct values for each requested option type; unknown types are skipped."""
    if store is None:
        raise RetrievalError("Cutoff data is not loaded")

    options = {}
    for option_type in types:
        field = OPTION_FIELDS.get(option_type.strip())
        if field is None:
            continue
        values = store.distinct_values(field)
        if field == "year":
            values = sorted(values, reverse=True)
        options[option_type.strip()] = values
    return options


def parse_trend_request(params: Mapping[str, Any]) -> TrendRequest:
    try:
        return TrendRequest.model_validate(dict(params))
    except ValidationError as e:
        raise InvalidFilterError("Missing required parameters for trend data.") from e


def build_trend_figure(points: Sequence[TrendPoint], title: str) -> go.Figure:
    """
    Line chart of opening and closing ranks across years

    Args:
        points (Sequence[TrendPoint]): Trend points ordered by year
        title (str): Chart title

    Returns:
        go.Figure: Figure with one trace per rank column
    """
    years = [point.year for point in points]
    fig = go.Figure()
    fig.add_trace(go.Scatter(
        x=years,
        y=[sanitize_rank(point.opening_rank) for point in points],
        mode="lines+markers",
        name="Opening Rank",
    ))
    fig.add_trace(go.Scatter(
        x=years,
        y=[sanitize_rank(point.closing_rank) for point in points],
        mode="lines+markers",
        name="Closing Rank",
    ))
    fig.update_layout(
        title=title,
        xaxis_title="Year",
        yaxis_title="Rank",
        xaxis=dict(tickmode="array", tickvals=years),
    )
    return fig


def get_trend(request: TrendRequest, store: Optional[CutoffStore]) -> TrendResponse:
    """Year-by-year ranks of one institute/program/quota/seat/gender/round entry."""
    if store is None:
        raise RetrievalError("Cutoff data is not loaded")

    predicates = (
        Predicate("institute", EQ, request.institute),
        Predicate("program_name", EQ, request.program),
        Predicate("quota", EQ, request.quota),
        Predicate("seat_type", EQ, request.seat_type),
        Predicate("gender", EQ, request.gender),
        Predicate("round", EQ, request.round),
    )
    records = store.fetch_matching(predicates, (SortKey("year"),))
    points = [
        TrendPoint(year=record.year, opening_rank=record.opening_rank, closing_rank=record.closing_rank)
        for record in records
    ]
    logger.info(f"Trend for {request.institute} / {request.program}: {len(points)} years")

    plot_data = None
    if points:
        fig = build_trend_figure(points, f"{request.institute} - {request.program} (Round {request.round})")
        plot_data = json.loads(fig.to_json())
    return TrendResponse(trend=points, plot_data=plot_data)
