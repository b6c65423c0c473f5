import itertools

from fleet_integrations.models import Company, Integration
from fleet_integrations.status import PlatformKind

_sequence = itertools.count(1)


def make_company(**overrides):
    n = next(_sequence)
    defaults = {
        "name": f"Company {n}",
        "api_key": f"fm_test_key_{n:04d}",
        "webhook_secret": "whsec_test",
    }
    defaults.update(overrides)
    return Company.objects.create(**defaults)


def make_integration(company=None, **overrides):
    defaults = {
        "company": company or make_company(),
        "integration_type": PlatformKind.CUSTOM,
        "name": f"Store {next(_sequence)}",
        "api_url": "https://shop.example.com",
        "api_key": "ext_key",
        "riders_endpoint": "/api/riders",
        "orders_endpoint": "/api/orders",
        "customers_endpoint": "/api/customers",
    }
    defaults.update(overrides)
    return Integration.objects.create(**defaults)
