import os

from abirpc.blockchain.eth.chains import MAINNET
from abirpc.blockchain.eth.interfaces import AbiProvider, ProviderType
from abirpc.utilities.logging import GlobalLoggerSettings

######################
# Boring setup stuff #
######################

LOG_LEVEL = "info"
GlobalLoggerSettings.set_log_level(log_level_name=LOG_LEVEL)
GlobalLoggerSettings.start_console_logging()
GlobalLoggerSettings.start_text_file_logging()

eth_endpoint = os.environ.get("DEMO_WS_PROVIDER_URI", "wss://ethereum-rpc.publicnode.com")

###############
# Connect
###############

abi_provider = AbiProvider(endpoint=eth_endpoint, chain=MAINNET)
w3 = abi_provider.provider(ProviderType.WEBSOCKET)

latest_block = w3.eth.get_block("latest")
print(f"Connected to {MAINNET} ({eth_endpoint})")
print(f"Latest block #{latest_block['number']} ({latest_block['hash'].hex()})")
