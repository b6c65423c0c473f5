from unittest.mock import MagicMock

import pytest
import requests

from fleet_integrations.tests.factories import make_company, make_integration


@pytest.fixture
def company():
    return make_company()


@pytest.fixture
def integration(company):
    return make_integration(company=company)


def make_response(status_code=200, json_data=None, reason="OK"):
    """Build a fake ``requests.Response``."""
    response = MagicMock(spec=requests.Response)
    response.status_code = status_code
    response.reason = reason
    if isinstance(json_data, Exception):
        response.json.side_effect = json_data
    else:
        response.json.return_value = json_data
    return response


@pytest.fixture
def session():
    """A ``requests.Session`` stand-in routing GETs by URL suffix.

    Set ``session.routes[path] = response_or_exception``; unknown paths
    answer 404.
    """
    fake = MagicMock(spec=requests.Session)
    fake.routes = {}

    def get(url, headers=None, timeout=None):
        for path, outcome in fake.routes.items():
            if url.endswith(path):
                if isinstance(outcome, Exception):
                    raise outcome
                return outcome
        return make_response(404, reason="Not Found")

    fake.get.side_effect = get
    return fake
