import os
import sys

from abirpc.blockchain.eth.agents import ContractAgency, ContractBinding
from abirpc.blockchain.eth.chains import MAINNET
from abirpc.blockchain.eth.events import ContractEventsThrottler
from abirpc.blockchain.eth.interfaces import ProviderType
from abirpc.utilities.logging import GlobalLoggerSettings

######################
# Boring setup stuff #
######################

LOG_LEVEL = "info"
GlobalLoggerSettings.set_log_level(log_level_name=LOG_LEVEL)
GlobalLoggerSettings.start_console_logging()
GlobalLoggerSettings.start_text_file_logging()

eth_endpoint = os.environ.get("DEMO_HTTP_PROVIDER_URI", "https://ethereum-rpc.publicnode.com")
token_address = sys.argv[1] if len(sys.argv) > 1 else "0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48"  # USDC
lookback = 20  # blocks


class ERC20(ContractBinding):
    contract_name = "ERC20"
    abi = [
        {
            "anonymous": False,
            "inputs": [
                {"indexed": True, "name": "from", "type": "address"},
                {"indexed": True, "name": "to", "type": "address"},
                {"indexed": False, "name": "value", "type": "uint256"},
            ],
            "name": "Transfer",
            "type": "event",
        },
        {
            "inputs": [],
            "name": "symbol",
            "outputs": [{"name": "", "type": "string"}],
            "stateMutability": "view",
            "type": "function",
        },
        {
            "inputs": [],
            "name": "decimals",
            "outputs": [{"name": "", "type": "uint8"}],
            "stateMutability": "view",
            "type": "function",
        },
    ]


###############
# Register
###############

abirpc = ContractAgency.get_abirpc(ERC20, endpoint=eth_endpoint, chain=MAINNET)
w3 = abirpc.provider(ProviderType.RETRY_HTTP)
token = abirpc.register(w3=w3, address=token_address)

# registering again hands back the same binding
assert abirpc.register(w3=w3, address=token_address.lower()) is token

symbol = token.functions.symbol().call()
decimals = token.functions.decimals().call()

###############
# Transfers
###############

latest = w3.eth.block_number
print(f"--------- {symbol} transfers in blocks {latest - lookback}..{latest} ---------")

throttler = ContractEventsThrottler(binding=token,
                                    event_name="Transfer",
                                    from_block=latest - lookback,
                                    to_block=latest,
                                    max_blocks_per_call=5)
for transfer in throttler:
    amount = transfer.args["value"] / 10 ** decimals
    print(f"#{transfer.block_number} {transfer.args['from']} -> {transfer.args['to']}: {amount} {symbol}")
