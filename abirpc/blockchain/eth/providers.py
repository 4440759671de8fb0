from urllib.parse import urlparse

from web3 import HTTPProvider, IPCProvider, WebsocketProvider
from web3.providers import BaseProvider

from abirpc.exceptions import DevelopmentInstallationRequired


class ProviderError(Exception):
    pass


def _get_http_provider(endpoint) -> BaseProvider:
    from abirpc.blockchain.eth.interfaces import AbiProvider

    return HTTPProvider(
        endpoint_uri=endpoint,
        request_kwargs={"timeout": AbiProvider.TIMEOUT},
    )


def _get_websocket_provider(endpoint) -> BaseProvider:
    from abirpc.blockchain.eth.interfaces import AbiProvider

    return WebsocketProvider(
        endpoint_uri=endpoint,
        websocket_timeout=AbiProvider.TIMEOUT,
    )


def _get_ipc_provider(endpoint) -> BaseProvider:
    from abirpc.blockchain.eth.interfaces import AbiProvider

    uri_breakdown = urlparse(endpoint)
    ipc_path = uri_breakdown.path if uri_breakdown.scheme == "file" else endpoint
    return IPCProvider(ipc_path=ipc_path, timeout=AbiProvider.TIMEOUT)


def _get_ethereum_tester(test_backend) -> BaseProvider:
    try:
        from eth_tester import EthereumTester
        from web3.providers.eth_tester.main import EthereumTesterProvider
    except ImportError:
        raise DevelopmentInstallationRequired(
            importable_name="web3.providers.eth_tester"
        )
    eth_tester = EthereumTester(backend=test_backend, auto_mine_transactions=True)
    provider = EthereumTesterProvider(ethereum_tester=eth_tester)
    return provider


def _get_mock_test_provider() -> BaseProvider:
    # https://github.com/ethereum/eth-tester#mockbackend
    try:
        from eth_tester import MockBackend
    except ImportError:
        raise DevelopmentInstallationRequired(importable_name="eth_tester.MockBackend")
    mock_backend = MockBackend()
    provider = _get_ethereum_tester(test_backend=mock_backend)
    return provider
