import pytest

from college_predictor.errors import InvalidFilterError, RetrievalError
from college_predictor.filters import parse_filter_request
from college_predictor.ranking import sanitize_rank
from college_predictor.store import CutoffStore
from college_predictor.service import (
    assemble_page,
    get_filter_options,
    get_trend,
    make_record_id,
    match_colleges,
    parse_trend_request,
)


def _match(store, **params):
    return match_colleges(parse_filter_request(params), store)


def test_make_record_id(make_record):
    record = make_record("48500", institute="IIT (BHU) Varanasi", program_name="Computer Science & Engg. (4 Years)")
    assert make_record_id(record) == "iit-bhu-varanasi-computer-science-engg-4-years-ai-open-gender-neutral-2023-6"


def test_record_ids_differ_by_year(make_record):
    assert make_record_id(make_record("1", year=2022)) != make_record_id(make_record("1", year=2023))


def test_fetch_all_ranks_every_admissible_row(store):
    page = _match(store, seatType="OPEN", rank="50000", fetchAll="true")
    assert [(r.institute, r.closing_rank) for r in page.results] == [
        ("NIT Beta", "49200"),
        ("NIT Alpha", "48500"),
        ("NIT Zeta", "46000P"),
        ("NIT Alpha", "47000"),
        ("NIT Alpha", "47500"),
        ("NIT Gamma", "60000"),
    ]
    assert page.total_count == 6
    assert page.current_page == 1
    assert page.total_pages == 1


def test_nothing_below_the_floor_is_returned(store):
    page = _match(store, seatType="OPEN", rank="50000", fetchAll="true")
    assert all(sanitize_rank(r.closing_rank) >= 45500 for r in page.results)


def test_paginated_results_count_all_matches(store):
    page = _match(store, seatType="OPEN", rank="50000", limit="2")
    assert page.total_count == 6
    assert page.total_pages == 3
    assert page.current_page == 1
    assert [r.closing_rank for r in page.results] == ["49200", "48500"]

    last = _match(store, seatType="OPEN", rank="50000", limit="2", page="3")
    # Page 3 holds the 2023 round 5 and 2022 rows, re-sorted by relevance within the page
    assert [(r.year, r.round) for r in last.results] == [(2022, 6), (2023, 5)]
    assert [r.closing_rank for r in last.results] == ["47000", "47500"]


def test_pinned_institute_ignores_rank(store):
    page = _match(store, seatType="OPEN", rank="50000", institute="NIT Delta")
    assert [r.closing_rank for r in page.results] == ["abc"]

    page = _match(store, seatType="OPEN", rank="50000", institute="NIT Alpha", fetchAll="true")
    assert [(r.year, r.round) for r in page.results] == [(2023, 6), (2023, 5), (2022, 6)]


def test_without_rank_uses_database_order(store):
    page = _match(store, seatType="OPEN", program="computer")
    assert [(r.institute, r.year, r.round) for r in page.results] == [
        ("NIT Alpha", 2023, 6),
        ("NIT Zeta", 2023, 6),
        ("NIT Alpha", 2023, 5),
        ("NIT Alpha", 2022, 6),
    ]
    assert page.total_count == 4


def test_no_matches(store):
    page = _match(store, seatType="SC", rank="50000")
    assert page.results == []
    assert page.total_count == 0
    assert page.total_pages == 0


def test_fetch_all_total_is_the_returned_length(make_record):
    request = parse_filter_request({"seatType": "OPEN", "fetchAll": "true", "limit": "1"})
    page = assemble_page([make_record("1"), make_record("2")], request, total_count=99)
    assert page.total_count == 2
    assert page.total_pages == 1


def test_results_carry_identity_and_fields(store):
    page = _match(store, seatType="OBC-NCL")
    result = page.results[0]
    assert result.id == "nit-alpha-computer-science-ai-obc-ncl-gender-neutral-2023-6"
    assert result.closing_rank == "52000"
    assert result.opening_rank == "40000"


def test_unloaded_store_is_a_retrieval_error():
    with pytest.raises(RetrievalError):
        match_colleges(parse_filter_request({"seatType": "OPEN"}), None)


def test_filter_options(store):
    options = get_filter_options(["years", "rounds", "seatTypes", "bogus"], store)
    assert options == {
        "years": [2023, 2022],
        "rounds": [5, 6],
        "seatTypes": ["OBC-NCL", "OPEN"],
    }


def test_trend_is_ordered_by_year(store):
    request = parse_trend_request({
        "institute": "NIT Alpha", "program": "Computer Science", "quota": "AI",
        "seatType": "OPEN", "gender": "Gender-Neutral", "round": "6",
    })
    response = get_trend(request, store)
    assert [(p.year, p.closing_rank) for p in response.trend] == [(2022, "47000"), (2023, "48500")]
    assert [trace["name"] for trace in response.plot_data["data"]] == ["Opening Rank", "Closing Rank"]


def test_trend_requires_every_parameter():
    with pytest.raises(InvalidFilterError, match="Missing required parameters"):
        parse_trend_request({"institute": "NIT Alpha", "program": "Computer Science"})


def test_rows_with_blank_program_are_still_matched(cutoff_frame):
    cutoff_frame.loc[len(cutoff_frame)] = [
        "NIT Omega", None, "AI", "OPEN", "Gender-Neutral", "39000", "49000", 2023, 6,
    ]
    store = CutoffStore(cutoff_frame)

    page = _match(store, seatType="OPEN", rank="50000", fetchAll="true")
    omega = [r for r in page.results if r.institute == "NIT Omega"]
    assert len(omega) == 1
    assert omega[0].program_name is None
    assert omega[0].id == "nit-omega-ai-open-gender-neutral-2023-6"
    # Sweet spot at distance 0 from the 49000 anchor
    assert page.results[0].institute == "NIT Omega"
    assert page.total_count == 7
