"""
tests/conftest.py
-----------------
Shared CSV fixtures for the ingestion, aggregation, session and API tests.
"""

import pytest

from core.data import parse_csv_text

HEADER = "Date,Type,Residence,Positive,Negative"

# Three rows over two days; totals 15 positive / 250 tests.
EXAMPLE_CSV = "\n".join(
    [
        HEADER,
        "2021-01-01,A,X,10,90",
        "2021-01-01,B,Y,0,100",
        "2021-01-02,A,X,5,45",
    ]
)


def make_csv(*rows: str) -> str:
    return "\n".join([HEADER, *rows])


@pytest.fixture
def example_csv() -> str:
    return EXAMPLE_CSV


@pytest.fixture
def example_dataset():
    return parse_csv_text(EXAMPLE_CSV)
