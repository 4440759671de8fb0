import copy

import pytest
from hexbytes import HexBytes

from abirpc.blockchain.eth.agents import AbiRpc, ContractAgency, ContractBinding
from abirpc.blockchain.eth.chains import MAINNET, POLYGON
from abirpc.blockchain.eth.events import ContractEvents, ContractEventsThrottler, EventRecord
from abirpc.blockchain.eth.interfaces import AbiProvider, ProviderType
from abirpc.blockchain.eth.registry import AbiRegistry
from tests.constants import DAI_ADDRESS, MOCK_HTTP_ENDPOINT, NULL_ADDRESS, USDC_ADDRESS, WETH_ADDRESS
from tests.mock.agents import ERC20
from tests.mock.interfaces import MockWeb3


def make_raw_event(block_number, log_index=0, value=1):
    return {
        'args': {'from': NULL_ADDRESS, 'to': WETH_ADDRESS, 'value': value},
        'event': 'Transfer',
        'address': USDC_ADDRESS,
        'blockNumber': block_number,
        'logIndex': log_index,
        'transactionHash': HexBytes(b'\x11' * 32),
    }


class FakeEvent:

    def __init__(self, event_name, logs=()):
        self.event_name = event_name
        self.logs = list(logs)
        self.calls = []

    def get_logs(self, fromBlock, toBlock, argument_filters):
        self.calls.append((fromBlock, toBlock, argument_filters))
        latest = toBlock if isinstance(toBlock, int) else float('inf')
        return [log for log in self.logs if fromBlock <= log['blockNumber'] <= latest]


class FakeContractEvents:

    def __init__(self, *events):
        self._events = events
        for event in events:
            setattr(self, event.event_name, event)

    def __iter__(self):
        return iter(self._events)


class FakeContract:

    def __init__(self, *events):
        self.events = FakeContractEvents(*events)


class FakeBinding:

    def __init__(self, contract):
        self.events = ContractEvents(contract)
        self.w3 = MockWeb3()


#
# ContractBinding
#

def test_binding_requires_abi(offline_w3):
    class NoAbi(ContractBinding):
        contract_name = "NoAbi"

    with pytest.raises(TypeError, match="must declare an ABI"):
        NoAbi(address=USDC_ADDRESS, w3=offline_w3)


def test_binding_requires_contract_name(offline_w3):
    class Unnamed(ContractBinding):
        abi = ERC20.abi

    with pytest.raises(TypeError, match="must declare a contract_name"):
        Unnamed(address=USDC_ADDRESS, w3=offline_w3)


def test_binding_repr_uses_contract_name(offline_w3):
    class StableCoin(ERC20):
        contract_name = "USDC"

    usdc = StableCoin(address=USDC_ADDRESS, w3=offline_w3)
    assert repr(usdc) == f"USDC(address={USDC_ADDRESS})"
    assert usdc.log.namespace == "USDC"


def test_binding_properties(offline_w3):
    usdc = ERC20(address=USDC_ADDRESS.lower(), w3=offline_w3)

    assert usdc.address == USDC_ADDRESS
    assert usdc.w3 is offline_w3
    assert usdc.contract.address == USDC_ADDRESS
    assert usdc.functions is usdc.contract.functions
    assert set(usdc.events.names) == {'Transfer', 'Approval'}
    assert repr(usdc) == f"ERC20(address={USDC_ADDRESS})"


def test_binding_equality(offline_w3):
    class OtherToken(ERC20):
        pass

    usdc = ERC20(address=USDC_ADDRESS, w3=offline_w3)
    assert usdc == ERC20(address=USDC_ADDRESS, w3=offline_w3)
    assert usdc != ERC20(address=DAI_ADDRESS, w3=offline_w3)
    assert usdc != OtherToken(address=USDC_ADDRESS, w3=offline_w3)
    assert usdc != USDC_ADDRESS
    assert len({usdc, ERC20(address=USDC_ADDRESS, w3=offline_w3)}) == 1


def test_binding_get_logs(offline_w3):
    usdc = ERC20(address=USDC_ADDRESS, w3=offline_w3)
    transfer = FakeEvent('Transfer', logs=[make_raw_event(5), make_raw_event(10, value=7)])
    usdc.events = ContractEvents(FakeContract(transfer))

    records = usdc.get_logs('Transfer', from_block=6, to_block=20, to=WETH_ADDRESS)

    assert len(records) == 1
    assert records[0].args['value'] == 7
    assert transfer.calls == [(6, 20, {'to': WETH_ADDRESS})]


#
# Events
#

def test_event_record():
    record = EventRecord(make_raw_event(block_number=42, log_index=3, value=100))

    assert record.event == 'Transfer'
    assert record.args == {'from': NULL_ADDRESS, 'to': WETH_ADDRESS, 'value': 100}
    assert record.address == USDC_ADDRESS
    assert record.block_number == 42
    assert record.log_index == 3
    assert record.transaction_hash == HexBytes(b'\x11' * 32).hex()
    assert 'block_number: 42' in repr(record)


def test_contract_events_defaults():
    transfer = FakeEvent('Transfer', logs=[make_raw_event(1), make_raw_event(2)])
    contract_events = ContractEvents(FakeContract(transfer, FakeEvent('Approval')))

    assert contract_events.names == ('Transfer', 'Approval')

    records = list(contract_events['Transfer']())
    assert [r.block_number for r in records] == [1, 2]
    assert transfer.calls == [(0, 'latest', {})]

    list(contract_events.Transfer(from_block=2, to_block=3, value=1))
    assert transfer.calls[-1] == (2, 3, {'value': 1})

    assert len(list(contract_events)) == 2


def test_contract_events_unknown_event():
    contract_events = ContractEvents(FakeContract(FakeEvent('Transfer')))
    with pytest.raises(TypeError, match="Mint"):
        contract_events['Mint']


def test_contract_events_attribute_protocol():
    contract_events = ContractEvents(FakeContract(FakeEvent('Transfer')))

    assert hasattr(contract_events, 'Transfer')
    assert not hasattr(contract_events, 'Mint')
    assert getattr(contract_events, 'Mint', None) is None
    with pytest.raises(AttributeError):
        contract_events.__missing_dunder__


def test_binding_events_can_be_copied(offline_w3):
    usdc = ERC20(address=USDC_ADDRESS, w3=offline_w3)

    events = copy.copy(usdc.events)
    assert events is not usdc.events
    assert events.names == usdc.events.names
    assert events.contract is usdc.contract
    assert not hasattr(usdc.events, 'Mint')


def test_events_throttler_windows():
    logs = [make_raw_event(block) for block in range(0, 25)]
    transfer = FakeEvent('Transfer', logs=logs)
    binding = FakeBinding(FakeContract(transfer))

    throttler = ContractEventsThrottler(binding=binding,
                                        event_name='Transfer',
                                        from_block=3,
                                        to_block=20,
                                        max_blocks_per_call=5,
                                        to=WETH_ADDRESS)
    records = list(throttler)

    assert [r.block_number for r in records] == list(range(3, 21))
    assert [(c[0], c[1]) for c in transfer.calls] == [(3, 7), (8, 12), (13, 17), (18, 20)]
    assert all(c[2] == {'to': WETH_ADDRESS} for c in transfer.calls)


def test_events_throttler_windows_never_exceed_the_cap():
    transfer = FakeEvent('Transfer')
    binding = FakeBinding(FakeContract(transfer))

    list(ContractEventsThrottler(binding=binding,
                                 event_name='Transfer',
                                 from_block=0,
                                 to_block=2999,
                                 max_blocks_per_call=1000))

    windows = [(c[0], c[1]) for c in transfer.calls]
    assert windows == [(0, 999), (1000, 1999), (2000, 2999)]
    assert all(to_block - from_block + 1 <= 1000 for from_block, to_block in windows)


def test_events_throttler_single_block():
    transfer = FakeEvent('Transfer', logs=[make_raw_event(7)])
    binding = FakeBinding(FakeContract(transfer))

    throttler = ContractEventsThrottler(binding=binding, event_name='Transfer', from_block=7, to_block=7)
    assert [r.block_number for r in throttler] == [7]
    assert [(c[0], c[1]) for c in transfer.calls] == [(7, 7)]


def test_events_throttler_defaults_to_latest_block():
    transfer = FakeEvent('Transfer', logs=[make_raw_event(0), make_raw_event(1)])
    binding = FakeBinding(FakeContract(transfer))

    throttler = ContractEventsThrottler(binding=binding, event_name='Transfer', from_block=0)
    assert throttler.to_block == binding.w3.eth.block_number
    assert len(list(throttler)) == 2


def test_events_throttler_invalid_arguments():
    binding = FakeBinding(FakeContract(FakeEvent('Transfer')))

    with pytest.raises(ValueError, match="Invalid events block range"):
        ContractEventsThrottler(binding=binding, event_name='Transfer', from_block=10, to_block=9)

    with pytest.raises(ValueError, match="max_blocks_per_call"):
        ContractEventsThrottler(binding=binding, event_name='Transfer', from_block=0, to_block=9,
                                max_blocks_per_call=-1)

    with pytest.raises(ValueError, match="max_blocks_per_call"):
        ContractEventsThrottler(binding=binding, event_name='Transfer', from_block=0, to_block=9,
                                max_blocks_per_call=0)

    with pytest.raises(TypeError):
        ContractEventsThrottler(binding=binding, event_name='Mint', from_block=0, to_block=9)


#
# AbiRpc
#

def test_abirpc_rejects_non_bindings():
    with pytest.raises(TypeError):
        AbiRpc(binding_class=object)
    with pytest.raises(TypeError):
        AbiRpc(binding_class=str)


def test_abirpc_register(offline_w3):
    abirpc = AbiRpc(binding_class=ERC20, endpoint=MOCK_HTTP_ENDPOINT, chain=MAINNET)

    assert abirpc.endpoint == MOCK_HTTP_ENDPOINT
    assert abirpc.chain == MAINNET
    assert isinstance(abirpc.registry, AbiRegistry)

    usdc = abirpc.register(w3=offline_w3, address=USDC_ADDRESS)
    assert isinstance(usdc, ERC20)
    assert abirpc.register(w3=offline_w3, address=USDC_ADDRESS.lower()) is usdc
    assert abirpc.registry.get_entry(USDC_ADDRESS) is usdc


def test_abirpc_provider_delegates(mocker):
    w3 = MockWeb3()
    provider = mocker.patch.object(AbiProvider, 'provider', autospec=True, return_value=w3)

    abirpc = AbiRpc(binding_class=ERC20, endpoint=MOCK_HTTP_ENDPOINT, chain=MAINNET)
    assert abirpc.provider(ProviderType.RETRY_HTTP) is w3

    abi_provider, provider_type = provider.call_args.args
    assert provider_type == ProviderType.RETRY_HTTP
    assert abi_provider.endpoint == MOCK_HTTP_ENDPOINT
    assert abi_provider.chain == MAINNET


def test_bindings_share_the_client_handle(offline_w3):
    abirpc = AbiRpc(binding_class=ERC20, endpoint=MOCK_HTTP_ENDPOINT, chain=MAINNET)
    usdc = abirpc.register(w3=offline_w3, address=USDC_ADDRESS)
    weth = abirpc.register(w3=offline_w3, address=WETH_ADDRESS)
    assert usdc.w3 is weth.w3 is offline_w3


#
# ContractAgency
#

def test_contract_agency():
    abirpc = ContractAgency.get_abirpc(ERC20, endpoint=MOCK_HTTP_ENDPOINT, chain=MAINNET)

    assert ContractAgency.get_abirpc(ERC20, endpoint=MOCK_HTTP_ENDPOINT, chain=MAINNET) is abirpc
    assert ContractAgency.get_abirpc(ERC20, endpoint=MOCK_HTTP_ENDPOINT, chain=POLYGON) is not abirpc
    assert ContractAgency.get_abirpc(ERC20, endpoint=None, chain=MAINNET) is not abirpc

    ContractAgency.clear()
    assert ContractAgency.get_abirpc(ERC20, endpoint=MOCK_HTTP_ENDPOINT, chain=MAINNET) is not abirpc
