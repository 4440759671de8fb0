import pytest
from web3 import HTTPProvider, Web3

from abirpc.blockchain.eth.agents import ContractAgency
from abirpc.utilities.logging import GlobalLoggerSettings
from tests.constants import MOCK_HTTP_ENDPOINT


@pytest.fixture(scope="function")
def offline_w3():
    # contract objects can be built without ever reaching the endpoint
    return Web3(HTTPProvider(MOCK_HTTP_ENDPOINT))


@pytest.fixture(autouse=True)
def clear_contract_agency():
    yield
    ContractAgency.clear()


#
# Pytest configuration
#


def pytest_collection_modifyitems(config, items):
    log_level_name = config.getoption("--log-level", "info", skip=True)
    GlobalLoggerSettings.set_log_level(log_level_name.lower())
