from typing import Callable, Dict, Generic, Optional, Tuple, Type, TypeVar

from constant_sorrow.constants import NOT_REGISTERED
from eth_typing import ChecksumAddress
from web3 import Web3

from abirpc.blockchain.eth.chains import Chain
from abirpc.blockchain.eth.utils import address_from, truncate_checksum_address
from abirpc.utilities.concurrency import LockPoisoned, ReadWriteLock
from abirpc.utilities.logging import Logger

C = TypeVar("C")


class AbiRegistry(Generic[C]):
    """
    Address-keyed cache of client-bound contract instances.

    One registry serves one contract type on one endpoint/chain. Entries are
    only ever added; there is no eviction. The mapping is guarded by a single
    reader-writer lock owned by this registry, and no I/O happens while it is held.

    A registry whose lock was poisoned (an exception escaped while writing)
    refuses every further access with ``RegistryPoisoned``.
    """

    RegistryPoisoned = LockPoisoned

    def __init__(self, endpoint: Optional[str] = None, chain: Optional[Chain] = None):
        self.log = Logger(self.__class__.__name__)
        self.endpoint = endpoint
        self.chain = chain
        self.__registry: Dict[ChecksumAddress, C] = dict()
        self.__lock = ReadWriteLock()

    def __repr__(self):
        r = "{name}({uri}, {chain})".format(name=self.__class__.__name__, uri=self.endpoint, chain=self.chain)
        return r

    def __len__(self) -> int:
        with self.__lock.read():
            return len(self.__registry)

    def __contains__(self, address) -> bool:
        return self.entry_exists(address)

    @property
    def poisoned(self) -> bool:
        return self.__lock.poisoned

    @property
    def addresses(self) -> Tuple[ChecksumAddress, ...]:
        with self.__lock.read():
            return tuple(self.__registry)

    def entry_exists(self, address) -> bool:
        address = address_from(address)
        with self.__lock.read():
            return address in self.__registry

    def add_entry(self, address, instance: C) -> None:
        """Inserts unconditionally; an existing entry for the address is replaced."""
        address = address_from(address)
        with self.__lock.write():
            self.__registry[address] = instance
        self.log.debug(f"Added {instance.__class__.__name__} entry for {truncate_checksum_address(address)}")

    def get_entry(self, address) -> C:
        address = address_from(address)
        with self.__lock.read():
            return self.__registry[address]

    def get_or_create(self, address, factory: Callable[[ChecksumAddress], C]) -> C:
        """
        Returns the entry for ``address``, building it with ``factory`` if absent.

        Insertion is atomic: concurrent callers racing on an unseen address
        build exactly one instance and all of them receive it. ``factory`` runs
        while the write lock is held, so it must not perform I/O. If it raises,
        nothing is inserted and the error propagates to the caller.
        """
        address = address_from(address)

        with self.__lock.read():
            instance = self.__registry.get(address, NOT_REGISTERED)
        if instance is not NOT_REGISTERED:
            return instance

        failure = None
        with self.__lock.write():
            instance = self.__registry.get(address, NOT_REGISTERED)
            if instance is NOT_REGISTERED:
                try:
                    instance = factory(address)
                except Exception as e:
                    # the mapping is untouched; leave the lock healthy
                    failure = e
                else:
                    self.__registry[address] = instance
                    self.log.debug(f"Created {instance.__class__.__name__} entry for "
                                   f"{truncate_checksum_address(address)}")
        if failure is not None:
            raise failure
        return instance

    def register(self, w3: Web3, address, binding_class: Type[C]) -> C:
        """Get-or-create the ``binding_class`` instance for ``address``, bound to ``w3``."""
        return self.get_or_create(address, factory=lambda a: binding_class(address=a, w3=w3))
