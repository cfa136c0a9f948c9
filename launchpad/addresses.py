"""
Address Helpers

Normalisation of caller-supplied addresses and CREATE-style derivation of
ledger addresses for tokens deployed by the factory.
"""

from eth_utils import is_address, keccak, to_canonical_address, to_checksum_address
import rlp

from .constants import ZERO_ADDRESS
from .exceptions import Reason, ValidationError


def normalize_address(address: str) -> str:
    """
    Return *address* in EIP-55 checksum form.

    Raises:
        ValidationError: InvalidAddress if *address* is not a 20-byte hex address.
    """
    if not isinstance(address, str) or not is_address(address):
        raise ValidationError(Reason.INVALID_ADDRESS, f"Not an address: {address!r}")
    return to_checksum_address(address)


def is_zero_address(address: str) -> bool:
    """True for the mint-source / burn-sink sentinel."""
    return normalize_address(address) == to_checksum_address(ZERO_ADDRESS)


def generate_ledger_address(factory_address: str, nonce: int) -> str:
    """
    Derive the address of the *nonce*-th ledger created by a factory.

    Address = keccak256(rlp([factory, nonce]))[-20:]

    Args:
        factory_address: Factory address (any accepted hex form)
        nonce: Number of ledgers the factory created before this one

    Returns:
        Ledger address (checksum format)
    """
    sender_bytes = to_canonical_address(normalize_address(factory_address))
    rlp_encoded = rlp.encode([sender_bytes, nonce])
    address_bytes = keccak(rlp_encoded)[-20:]
    return to_checksum_address("0x" + address_bytes.hex())
