from dataclasses import dataclass, field, replace
from typing import Any, Dict, Mapping, Optional

from cytoolz.functoolz import memoize


class UnrecognizedChain(Exception):
    """Raised when a chain name is not recognized."""


# This list is not exhaustive,
# but covers the public networks that still run clique/IBFT style headers.
POA_CHAINS = {
    5,  # Goerli
    56,  # BNB Smart Chain
    97,  # BNB Smart Chain Testnet
    100,  # Gnosis
    10200,  # Gnosis/Chiado
    137,  # Polygon/Mainnet
    80001,  # Polygon/Mumbai
    80002,  # Polygon/Amoy
}


@dataclass(frozen=True)
class RetryClientConfig:
    """Retry tuning for the retry-wrapped HTTP transport."""

    rate_limit_retries: int = 10
    timeout_retries: int = 3
    initial_backoff_ms: int = 1000

    def __post_init__(self):
        for name in ("rate_limit_retries", "timeout_retries", "initial_backoff_ms"):
            value = getattr(self, name)
            if not isinstance(value, int) or isinstance(value, bool):
                raise TypeError(f"{name} must be an int, not {type(value)}")
            if value < 0:
                raise ValueError(f"{name} must be non-negative, got {value}")

    @property
    def initial_backoff(self) -> float:
        """Initial backoff in seconds"""
        return self.initial_backoff_ms / 1000


@dataclass(frozen=True)
class Chain:
    id: int
    name: str = ""
    assert_chain_id: bool = True
    retry_config: Optional[RetryClientConfig] = None
    poa: Optional[bool] = field(default=None, compare=False)

    def __post_init__(self):
        if not isinstance(self.id, int) or isinstance(self.id, bool) or self.id <= 0:
            raise ValueError(f"Chain id must be a positive integer, got {self.id!r}")
        if not self.name:
            object.__setattr__(self, "name", f"chain-{self.id}")
        if self.poa is None:
            object.__setattr__(self, "poa", self.id in POA_CHAINS)

    def __str__(self) -> str:
        return self.name

    def retry_client_config(self) -> RetryClientConfig:
        if self.retry_config is not None:
            return self.retry_config
        return RetryClientConfig()

    @classmethod
    def from_id(cls, chain_id: int, **overrides) -> "Chain":
        try:
            chain = KNOWN_CHAINS_BY_ID[chain_id]
        except KeyError:
            return cls(id=chain_id, **overrides)
        if overrides:
            chain = replace(chain, **overrides)
        return chain


MAINNET = Chain(id=1, name="mainnet")
SEPOLIA = Chain(id=11155111, name="sepolia")
HOLESKY = Chain(id=17000, name="holesky")
OPTIMISM = Chain(id=10, name="optimism")
POLYGON = Chain(id=137, name="polygon")
AMOY = Chain(id=80002, name="amoy")
ARBITRUM = Chain(id=42161, name="arbitrum")
BASE = Chain(id=8453, name="base")
GNOSIS = Chain(id=100, name="gnosis")

SUPPORTED_CHAINS: Dict[str, Chain] = {
    str(chain): chain
    for chain in (MAINNET, SEPOLIA, HOLESKY, OPTIMISM, POLYGON, AMOY, ARBITRUM, BASE, GNOSIS)
}

KNOWN_CHAINS_BY_ID: Dict[int, Chain] = {chain.id: chain for chain in SUPPORTED_CHAINS.values()}


@memoize
def get_chain(c: Any) -> Chain:
    if not isinstance(c, str):
        raise TypeError(f"chain must be a string, not {type(c)}")
    try:
        return SUPPORTED_CHAINS[c.lower()]
    except KeyError:
        raise UnrecognizedChain(f"{c} is not a recognized chain.")


@dataclass(frozen=True)
class NetworkConfig:
    """
    Plain value configuration for a single endpoint.

    Built from whatever the caller parsed (a JSON document, CLI options, ...);
    this layer reads neither the environment nor any file.
    """

    endpoint: Optional[str] = None
    chain: Optional[Chain] = None

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "NetworkConfig":
        overrides = dict()
        if "assert_chain_id" in payload:
            overrides["assert_chain_id"] = bool(payload["assert_chain_id"])
        retry = payload.get("retry")
        if retry is not None:
            overrides["retry_config"] = RetryClientConfig(**retry)

        chain_id = payload.get("chain_id")
        chain_name = payload.get("chain")
        if chain_id is not None and chain_name is not None:
            chain = get_chain(chain_name)
            if chain.id != int(chain_id):
                raise ValueError(
                    f"chain '{chain_name}' has id {chain.id}, but chain_id {chain_id} was configured"
                )
            chain = replace(chain, **overrides) if overrides else chain
        elif chain_id is not None:
            chain = Chain.from_id(int(chain_id), **overrides)
        elif chain_name is not None:
            chain = get_chain(chain_name)
            chain = replace(chain, **overrides) if overrides else chain
        else:
            chain = None

        return cls(endpoint=payload.get("endpoint"), chain=chain)

    def provider(self):
        from abirpc.blockchain.eth.interfaces import AbiProvider

        return AbiProvider(endpoint=self.endpoint, chain=self.chain)
