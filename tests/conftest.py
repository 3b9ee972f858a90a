import pandas as pd
import pytest
from fastapi.testclient import TestClient

from college_predictor.main import app, get_store
from college_predictor.models import AdmissionRecord
from college_predictor.store import CutoffStore

CSV_HEADER = [
    "Institute", "Academic Program Name", "Quota", "Seat Type", "Gender",
    "Opening Rank", "Closing Rank", "Year", "Round",
]

ROWS = [
    ["NIT Alpha", "Computer Science", "AI", "OPEN", "Gender-Neutral", "30000", "48500", 2023, 6],
    ["NIT Beta", "Electrical Engineering", "AI", "OPEN", "Gender-Neutral", "35000", "49200", 2023, 6],
    ["NIT Gamma", "Mechanical Engineering", "AI", "OPEN", "Gender-Neutral", "41000", "60000", 2023, 6],
    ["NIT Delta", "Civil Engineering", "AI", "OPEN", "Gender-Neutral", "", "abc", 2023, 6],
    ["NIT Epsilon", "Chemical Engineering", "AI", "OPEN", "Gender-Neutral", "20000", "40000", 2023, 6],
    ["NIT Zeta", "Computer Science", "AI", "OPEN", "Gender-Neutral", "31000P", "46000P", 2023, 6],
    ["NIT Alpha", "Computer Science", "AI", "OPEN", "Gender-Neutral", "29000", "47500", 2023, 5],
    ["NIT Alpha", "Computer Science", "AI", "OPEN", "Gender-Neutral", "28000", "47000", 2022, 6],
    ["NIT Alpha", "Computer Science", "AI", "OBC-NCL", "Gender-Neutral", "40000", "52000", 2023, 6],
]


@pytest.fixture
def cutoff_frame() -> pd.DataFrame:
    return pd.DataFrame(ROWS, columns=CSV_HEADER)


@pytest.fixture
def store(cutoff_frame) -> CutoffStore:
    return CutoffStore(cutoff_frame)


@pytest.fixture
def client(store):
    app.dependency_overrides[get_store] = lambda: store
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def make_record():
    def _make(closing_rank, institute="NIT Test", program_name="Computer Science", year=2023, round=6):
        return AdmissionRecord(
            institute=institute,
            program_name=program_name,
            quota="AI",
            seat_type="OPEN",
            gender="Gender-Neutral",
            opening_rank=None,
            closing_rank=closing_rank,
            year=year,
            round=round,
        )
    return _make
