"""Calldata helpers for the handful of contract calls the registrars make"""

from typing import Any, Sequence

from eth_abi import encode
from web3 import Web3


def function_selector(signature: str) -> bytes:
    """First four bytes of keccak256 of a canonical signature"""
    return Web3.keccak(text=signature)[:4]


def encode_call(signature: str, arg_types: Sequence[str], args: Sequence[Any]) -> str:
    """0x-prefixed calldata for `signature` with ABI-encoded arguments"""
    return Web3.to_hex(function_selector(signature) + encode(list(arg_types), list(args)))


def event_topic(signature: str) -> str:
    return Web3.to_hex(Web3.keccak(text=signature))


def topic_to_address(topic) -> str:
    """Indexed address topics are left-padded to 32 bytes"""
    raw = Web3.to_bytes(hexstr=topic) if isinstance(topic, str) else bytes(topic)
    return Web3.to_checksum_address(raw[-20:])


def as_hex(value) -> str:
    """Normalize HexBytes/bytes/str log fields to a lowercase 0x string"""
    if isinstance(value, str):
        return value.lower() if value.startswith("0x") else "0x" + value.lower()
    return Web3.to_hex(value)
