from threading import Lock
from typing import Dict, Generic, List, Optional, Tuple, Type, Union, cast

from eth_typing.evm import ChecksumAddress
from web3 import Web3
from web3.contract.contract import Contract
from web3.types import ABI, BlockIdentifier

from abirpc import types
from abirpc.blockchain.eth import events
from abirpc.blockchain.eth.chains import Chain
from abirpc.blockchain.eth.interfaces import AbiProvider, ProviderType
from abirpc.blockchain.eth.registry import AbiRegistry
from abirpc.blockchain.eth.utils import address_from
from abirpc.utilities.logging import Logger


class ContractBinding:
    """
    Base class for contract wrapper types bound to one address and one web3 client.

    Subclasses declare ``contract_name`` and ``abi``. Instances are treated as
    immutable after construction and are shared by reference; every binding
    built from the same client handle references that handle rather than
    owning a copy of it.
    """

    contract_name: str = NotImplemented
    abi: ABI = NotImplemented

    def __init__(self, address: Union[str, ChecksumAddress], w3: Web3):
        if self.abi is NotImplemented:
            raise TypeError(f"{self.__class__.__name__} must declare an ABI")
        if self.contract_name is NotImplemented:
            raise TypeError(f"{self.__class__.__name__} must declare a contract_name")
        self.log = Logger(self.contract_name)
        self.__address = address_from(address)
        self.__w3 = w3
        self.__contract = w3.eth.contract(address=self.__address, abi=self.abi)
        self.events = events.ContractEvents(self.__contract)
        self.log.debug(f"Initialized new {self.contract_name} binding for {self.__address}")

    def __repr__(self) -> str:
        r = "{}(address={})".format(self.contract_name, self.__address)
        return r

    def __eq__(self, other) -> bool:
        if not isinstance(other, ContractBinding):
            return NotImplemented
        return type(self) is type(other) and self.address == other.address

    def __hash__(self) -> int:
        return hash((self.__class__, self.__address))

    @property
    def address(self) -> ChecksumAddress:
        return self.__address

    @property
    def w3(self) -> Web3:
        return self.__w3

    @property
    def contract(self) -> Contract:
        return self.__contract

    @property
    def functions(self):
        return self.__contract.functions

    def get_logs(self,
                 event_name: str,
                 from_block: BlockIdentifier = None,
                 to_block: BlockIdentifier = None,
                 **argument_filters) -> List[events.EventRecord]:
        """Historical logs of ``event_name`` emitted by this contract's address within the block range."""
        event_filter = self.events[event_name]
        records = list(event_filter(from_block=from_block, to_block=to_block, **argument_filters))
        self.log.debug(f"Fetched {len(records)} {event_name} logs for {self.__address} "
                       f"in blocks [{from_block}, {to_block}]")
        return records


class AbiRpc(Generic[types.Binding]):
    """
    Binds one contract binding type to a provider factory and an instance registry.

    ``provider`` builds client handles for the configured endpoint and chain;
    ``register`` hands out one shared binding instance per address.
    """

    def __init__(self,
                 binding_class: Type[types.Binding],
                 endpoint: Optional[str] = None,
                 chain: Optional[Chain] = None):
        if not (isinstance(binding_class, type) and issubclass(binding_class, ContractBinding)):
            raise TypeError("Only ContractBinding subclasses can be registered.")
        self.binding_class = binding_class
        self.registry: AbiRegistry[types.Binding] = AbiRegistry(endpoint=endpoint, chain=chain)

    def __repr__(self) -> str:
        r = "{}[{}]({}, {})".format(self.__class__.__name__,
                                    self.binding_class.__name__,
                                    self.endpoint,
                                    self.chain)
        return r

    @property
    def endpoint(self) -> Optional[str]:
        return self.registry.endpoint

    @property
    def chain(self) -> Optional[Chain]:
        return self.registry.chain

    def provider(self, provider_type: Union[ProviderType, str] = ProviderType.HTTP) -> Web3:
        return AbiProvider(endpoint=self.endpoint, chain=self.chain).provider(provider_type)

    def register(self, w3: Web3, address: Union[str, ChecksumAddress]) -> types.Binding:
        return self.registry.register(w3=w3, address=address, binding_class=self.binding_class)


class ContractAgency:
    """Where registries live: one AbiRpc per contract type, endpoint and chain."""

    __abirpcs: Dict[Tuple[Type[ContractBinding], Optional[str], Optional[Chain]], AbiRpc] = dict()
    __lock = Lock()

    @classmethod
    def get_abirpc(cls,
                   binding_class: Type[types.Binding],
                   endpoint: Optional[str] = None,
                   chain: Optional[Chain] = None,
                   ) -> AbiRpc[types.Binding]:
        key = (binding_class, endpoint, chain)
        with cls.__lock:
            try:
                return cast(AbiRpc, cls.__abirpcs[key])
            except KeyError:
                abirpc = AbiRpc(binding_class=binding_class, endpoint=endpoint, chain=chain)
                cls.__abirpcs[key] = abirpc
                return abirpc

    @classmethod
    def clear(cls) -> None:
        with cls.__lock:
            cls.__abirpcs.clear()
