import pytest
from fastapi.testclient import TestClient

from app.main import app, rate_limiter


@pytest.fixture(autouse=True)
def _reset_rate_limiter():
    rate_limiter.reset()
    yield
    rate_limiter.reset()


@pytest.fixture
def client():
    """Create a test client for the FastAPI app."""
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def sample_lead():
    """Lead payload keyed the way the spreadsheet export keys it."""
    return {
        "Company Name": "Wirral Bakehouse",
        "Industry Type": "Bakery",
        "Phone Number": "0151 555 0199",
        "Address 1 (Road/Street/Lane/Park/Industrial Estate)": "12 Market Street",
        "Address 2 (Village/Town/City)": "Birkenhead",
        "Post Code (Please Put The Full Postcode, Example: CH41 5LH)": "CH41 5LH",
        "County": "Merseyside",
        "Lead Statement": "Grand opening of our new bakery this Saturday!",
        "Lead Proof URL": "https://facebook.com/wirralbakehouse/posts/1",
    }
