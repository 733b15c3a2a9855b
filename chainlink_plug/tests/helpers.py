"""Shared constants and builders for the unit tests"""

from hexbytes import HexBytes

from chainlink_plug.utils.transaction_builder import TransactionResult

# Anvil default deployer (Account 0)
ANVIL_PRIVATE_KEY = "0xac0974bec39a17e36ba4a6b4d238ff944bacb478cbed5efcae784d7bf4f2ff80"
ANVIL_DEPLOYER = "0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266"

CONTRACT_ADDRESS = "0x" + "ab" * 20
FORWARDER_ADDRESS = "0x" + "cd" * 20
REGISTRAR_ADDRESS = "0x" + "11" * 20
LINK_TOKEN_ADDRESS = "0x" + "22" * 20
ROUTER_ADDRESS = "0x" + "33" * 20

REGISTRATION_TX_HASH = "0x" + "aa" * 32
FORWARDER_TX_HASH = "0x" + "bb" * 32


def make_tx_result(tx_hash: str, logs=None, block_number: int = 100) -> TransactionResult:
    return TransactionResult(
        tx_hash=tx_hash,
        tx_receipt={"status": 1, "blockNumber": block_number, "gasUsed": 50000, "logs": logs or []},
        success=True,
        gas_used=50000,
        block_number=block_number,
    )


def topic_for(address: str) -> HexBytes:
    """Indexed address as it appears in a log topic"""
    return HexBytes(b"\x00" * 12 + bytes.fromhex(address[2:]))


class FakeExplorer:
    """Stands in for ExplorerClient inside `async with`"""

    def __init__(self, find_created_contract):
        self.find_created_contract = find_created_contract
        self.entered = 0

    async def __aenter__(self):
        self.entered += 1
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        return False
