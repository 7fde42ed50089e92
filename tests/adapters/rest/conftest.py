from __future__ import annotations

import pytest

from crmrecon.adapters.http_resilience import ResilienceConfig
from crmrecon.adapters.rest import RestRecordStore
from crmrecon.config import CrmApiConfig
from tests.helpers.crm_api import INSTANCE_URL, FakeCrmApi, make_client_factory


@pytest.fixture
def crm_api() -> FakeCrmApi:
    return FakeCrmApi()


@pytest.fixture
def rest_store(crm_api: FakeCrmApi) -> RestRecordStore:
    config = CrmApiConfig(
        instance_url=INSTANCE_URL,
        access_token="token",
        api_version="v60.0",
        resilience=ResilienceConfig(name="crm-test"),
    )
    return RestRecordStore(config=config, client_factory=make_client_factory(crm_api.handle))
