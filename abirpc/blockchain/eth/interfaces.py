from enum import Enum
from pathlib import Path
from typing import Callable, Dict, Optional, Tuple, Union
from urllib.parse import urlparse

import requests
from web3 import Web3
from web3.middleware import geth_poa_middleware
from web3.providers import BaseProvider

from abirpc.blockchain.eth.chains import Chain, RetryClientConfig
from abirpc.blockchain.eth.providers import (
    ProviderError,
    _get_http_provider,
    _get_ipc_provider,
    _get_mock_test_provider,
    _get_websocket_provider,
)
from abirpc.blockchain.eth.utils import get_chain_id
from abirpc.blockchain.middleware.retry import get_retry_middleware_class
from abirpc.utilities.logging import Logger


class ProviderType(Enum):
    WEBSOCKET = "ws"
    IPC = "ipc"
    HTTP = "http"
    RETRY_HTTP = "retry"
    MOCK = "mock"


class AbiProvider:
    """
    Builds web3 client handles for a configured endpoint and chain.

    Each call produces a new, caller-owned ``Web3`` instance over exactly one
    transport; nothing is pooled or cached here.


        Transport            Endpoint                     Validation
       ================ ============================ ===============================

        WEBSOCKET        ws://host:port, wss://...    liveness probe, chain id check
        IPC              /path/to/geth.ipc            liveness probe, chain id check
        HTTP             http(s)://host:port          chain id check
        RETRY_HTTP       http(s)://host:port          chain id check, retry middleware
        MOCK             (none)                       none


    The chain id check only runs when a ``Chain`` is configured and its
    ``assert_chain_id`` flag is set; local development chains with
    non-standard ids can switch it off.
    """

    TIMEOUT = 30  # seconds

    Web3 = Web3

    class ConfigurationError(ProviderError):
        pass

    class NoProvider(ConfigurationError):
        pass

    class UnexpectedEndpoint(ConfigurationError):
        pass

    class UnsupportedProvider(ProviderError):
        pass

    class ConnectionFailed(ProviderError):
        pass

    class ChainIdMismatch(ProviderError):
        def __init__(self, expected: int, actual: int, *args):
            self.expected = expected
            self.actual = actual
            message = f"Configured chain_id ({expected}) does not match chain ({actual})"
            super().__init__(message, *args)

    NETWORK_SCHEMES: Dict[ProviderType, Tuple[str, ...]] = {
        ProviderType.WEBSOCKET: ("ws", "wss"),
        ProviderType.HTTP: ("http", "https"),
        ProviderType.RETRY_HTTP: ("http", "https"),
    }

    def __init__(self, endpoint: Optional[str] = None, chain: Optional[Chain] = None):
        self.log = Logger(self.__class__.__name__)
        self.endpoint = endpoint
        self.chain = chain

    @classmethod
    def mock(cls) -> "AbiProvider":
        return cls(endpoint=None, chain=None)

    def __repr__(self):
        r = "{name}({uri}, {chain})".format(name=self.__class__.__name__, uri=self.endpoint, chain=self.chain)
        return r

    #
    # Entry points
    #

    def provider(self, provider_type: Union[ProviderType, str] = ProviderType.HTTP) -> Web3:
        try:
            provider_type = ProviderType(provider_type)
        except ValueError:
            raise self.UnsupportedProvider(f"'{provider_type}' is not a supported provider type")

        factories: Dict[ProviderType, Callable[[], Web3]] = {
            ProviderType.WEBSOCKET: self.websocket_provider,
            ProviderType.IPC: self.ipc_provider,
            ProviderType.HTTP: self.http_provider,
            ProviderType.RETRY_HTTP: self.retry_provider,
            ProviderType.MOCK: self.mock_provider,
        }
        return factories[provider_type]()

    def websocket_provider(self) -> Web3:
        endpoint = self._require_endpoint()
        self._validate_network_uri(endpoint, provider_type=ProviderType.WEBSOCKET)
        return self._connect(provider=_get_websocket_provider(endpoint), persistent=True)

    def ipc_provider(self) -> Web3:
        endpoint = self._require_endpoint()
        self._validate_ipc_path(endpoint)
        return self._connect(provider=_get_ipc_provider(endpoint), persistent=True)

    def http_provider(self) -> Web3:
        endpoint = self._require_endpoint()
        self._validate_network_uri(endpoint, provider_type=ProviderType.HTTP)
        return self._connect(provider=_get_http_provider(endpoint))

    def retry_provider(self) -> Web3:
        endpoint = self._require_endpoint()
        self._validate_network_uri(endpoint, provider_type=ProviderType.RETRY_HTTP)
        if self.chain:
            retry_config = self.chain.retry_client_config()
        else:
            retry_config = RetryClientConfig()
        return self._connect(provider=_get_http_provider(endpoint), retry_config=retry_config)

    def mock_provider(self) -> Web3:
        if self.endpoint:
            raise self.UnexpectedEndpoint(
                f"Mock provider does not take an endpoint, got '{self.endpoint}'"
            )
        self.log.debug("Using in-memory mock provider")
        return self.Web3(provider=_get_mock_test_provider())

    #
    # Validation
    #

    def _require_endpoint(self) -> str:
        if not self.endpoint:
            raise self.NoProvider("Provider URI is required")
        return self.endpoint

    def _validate_network_uri(self, endpoint: str, provider_type: ProviderType) -> None:
        schemes = self.NETWORK_SCHEMES[provider_type]
        uri_breakdown = urlparse(endpoint)
        if uri_breakdown.scheme not in schemes or not uri_breakdown.hostname:
            raise self.UnsupportedProvider(
                f"{endpoint} is an invalid or unsupported {provider_type.name} provider URI; "
                f"expected one of {', '.join(s + '://' for s in schemes)}"
            )
        try:
            uri_breakdown.port
        except ValueError as e:
            raise self.UnsupportedProvider(f"{endpoint} has an invalid port") from e

    def _validate_ipc_path(self, endpoint: str) -> None:
        uri_breakdown = urlparse(endpoint)
        if uri_breakdown.scheme not in ("", "file"):
            raise self.UnsupportedProvider(f"{endpoint} is not a filesystem path")
        path = uri_breakdown.path if uri_breakdown.scheme == "file" else endpoint
        if not path or Path(path).is_dir():
            raise self.UnsupportedProvider(f"{endpoint} is not an IPC socket path")

    def _assert_chain_id(self, w3: Web3) -> None:
        if not self.chain or not self.chain.assert_chain_id:
            return
        actual_chain_id = get_chain_id(w3)
        if actual_chain_id != self.chain.id:
            self.log.warn(
                f"Configured chain_id ({self.chain.id}) does not match chain ({actual_chain_id}) at {self.endpoint}"
            )
            raise self.ChainIdMismatch(expected=self.chain.id, actual=actual_chain_id)
        self.log.debug(f"Verified chain_id {actual_chain_id} ({self.chain}) at {self.endpoint}")

    #
    # Connection
    #

    def _attach_retry_middleware(self, w3: Web3, retry_config: RetryClientConfig) -> None:
        middleware_class = get_retry_middleware_class(self.endpoint)
        self.log.debug(
            f"Adding {middleware_class.__name__} (rate_limit_retries={retry_config.rate_limit_retries}, "
            f"timeout_retries={retry_config.timeout_retries}, "
            f"initial_backoff_ms={retry_config.initial_backoff_ms})"
        )
        w3.middleware_onion.add(middleware_class.configure(retry_config), name="retry")

    def _attach_poa_middleware(self, w3: Web3) -> None:
        # For use with Proof-Of-Authority chains
        if self.chain and self.chain.poa:
            self.log.debug("Injecting POA middleware at layer 0")
            w3.middleware_onion.inject(geth_poa_middleware, layer=0, name="poa")

    def _connect(self,
                 provider: BaseProvider,
                 persistent: bool = False,
                 retry_config: Optional[RetryClientConfig] = None
                 ) -> Web3:
        self.log.info(f"Connecting to {self.endpoint}")
        w3 = self.Web3(provider=provider)
        if retry_config is not None:
            self._attach_retry_middleware(w3, retry_config=retry_config)

        try:
            if persistent and not w3.is_connected():
                raise self.ConnectionFailed(f"Connection Failed - {self.endpoint} - node is unreachable")
            self._assert_chain_id(w3)
        except requests.ConnectionError as e:  # RPC
            raise self.ConnectionFailed(f"Connection Failed - {self.endpoint} - is RPC enabled?") from e
        except FileNotFoundError as e:  # IPC File Protocol
            raise self.ConnectionFailed(f"Connection Failed - {self.endpoint} - is IPC enabled?") from e
        except OSError as e:  # sockets
            raise self.ConnectionFailed(f"Connection Failed - {self.endpoint} - {e}") from e

        self._attach_poa_middleware(w3)
        return w3
