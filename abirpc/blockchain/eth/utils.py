from typing import Union

import eth_utils
from eth_typing import ChecksumAddress
from web3 import Web3


class InvalidChecksumAddress(eth_utils.exceptions.ValidationError):
    pass


def address_from(address: Union[str, bytes]) -> ChecksumAddress:
    """
    Parses a hex string (or 20 raw bytes) into an EIP-55 checksum address.

    All-lowercase and all-uppercase addresses are normalized; a mixed-case
    address must carry a valid checksum, otherwise InvalidChecksumAddress is raised.
    """
    if isinstance(address, bytes):
        if len(address) != 20:
            raise ValueError(f"Expected 20 address bytes, got {len(address)}")
        return eth_utils.to_checksum_address(address)

    if not isinstance(address, str):
        raise TypeError(f"{address.__class__.__name__} is an invalid type for an address.")

    if not eth_utils.is_hex_address(address):
        raise ValueError(f'"{address}" is not a valid hex address.')

    body = eth_utils.remove_0x_prefix(address)
    mixed_case = body != body.lower() and body != body.upper()
    if mixed_case and not eth_utils.is_checksum_address(address):
        raise InvalidChecksumAddress(f'"{address}" is not a valid EIP-55 checksum address.')

    return eth_utils.to_checksum_address(address)


def truncate_checksum_address(checksum_address: ChecksumAddress) -> str:
    return f"{checksum_address[:8]}...{checksum_address[-8:]}"


def get_chain_id(w3: Web3) -> int:
    result = w3.eth.chain_id
    try:
        # from hex-str
        chain_id = int(result, 16)
    except TypeError:
        # from int
        chain_id = int(result)

    return chain_id
