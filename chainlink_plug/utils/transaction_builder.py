"""
Contract-call transactions against a JSON-RPC endpoint

Builds, signs and sends the registration and configuration transactions,
then waits for a single confirmation. The Web3 HTTP provider is synchronous,
so every RPC round-trip is pushed to a worker thread with run_sync().
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, List, Optional

from eth_account.signers.local import LocalAccount
from web3 import Web3
from web3.exceptions import TransactionNotFound
from web3.types import TxParams, TxReceipt, Wei

from .common import run_sync
from .exceptions import ErrorCodes, TransactionError

LOG = logging.getLogger(__name__)

# Multiplier applied to gas estimates (+20%)
GAS_PADDING = 1.2


@dataclass
class TransactionOptions:
    """Fixed transaction fields; unset fields are queried from the node"""
    chain_id: Optional[int] = None


@dataclass
class TransactionResult:
    """Outcome of a sent transaction"""
    tx_hash: str
    tx_receipt: Optional[TxReceipt] = None
    success: bool = False
    gas_used: Optional[int] = None
    block_number: Optional[int] = None


class TransactionBuilder:
    """
    Builds, signs and sends transactions from a single local account.
    """

    def __init__(
        self,
        web3: Web3,
        account: LocalAccount,
        default_options: Optional[TransactionOptions] = None,
        receipt_timeout: float = 300.0,
        poll_latency: float = 1.0
    ):
        self.web3 = web3
        self.account = account
        self.default_options = default_options or TransactionOptions()
        self.receipt_timeout = receipt_timeout
        self.poll_latency = poll_latency

    @classmethod
    def from_private_key(cls, rpc_url: str, private_key: str, **kwargs) -> "TransactionBuilder":
        web3 = Web3(Web3.HTTPProvider(rpc_url))
        account = web3.eth.account.from_key(private_key)
        return cls(web3, account, **kwargs)

    @property
    def address(self) -> str:
        return self.account.address

    async def get_nonce(self) -> int:
        try:
            return await run_sync(
                self.web3.eth.get_transaction_count,
                self.account.address,
                'pending'
            )
        except Exception as e:
            raise TransactionError(
                f"Failed to get nonce for {self.account.address}: {e}",
                from_address=self.account.address,
                cause=e
            )

    async def estimate_gas(self, transaction: TxParams, padding: float = GAS_PADDING) -> int:
        """Estimate gas for `transaction` and apply padding"""
        tx_copy = dict(transaction)
        tx_copy.setdefault('from', self.account.address)
        for field in ('gas', 'gasPrice', 'maxFeePerGas', 'maxPriorityFeePerGas'):
            tx_copy.pop(field, None)

        try:
            estimate = await run_sync(self.web3.eth.estimate_gas, tx_copy)
        except Exception as e:
            raise TransactionError(
                f"Gas estimation failed: {e}",
                from_address=self.account.address,
                to_address=transaction.get('to'),
                cause=e
            )

        gas_limit = max(int(estimate * padding), 21000)
        LOG.info(f"Gas estimate: {estimate} -> {gas_limit} (with padding)")
        return gas_limit

    async def _query(self, what: str, getter):
        try:
            return await run_sync(getter)
        except Exception as e:
            raise TransactionError(
                f"Failed to get {what}: {e}",
                from_address=self.account.address,
                cause=e
            )

    async def build_transaction(self, to: str, data: Optional[str] = None) -> TxParams:
        tx: TxParams = {
            'from': self.account.address,
            'to': to,
            'value': Wei(0),
            'data': data or '0x'
        }

        if self.default_options.chain_id:
            tx['chainId'] = self.default_options.chain_id
        else:
            tx['chainId'] = await self._query("chain id", lambda: self.web3.eth.chain_id)

        tx['nonce'] = await self.get_nonce()
        tx['gasPrice'] = await self._query("gas price", lambda: self.web3.eth.gas_price)
        tx['gas'] = await self.estimate_gas(tx)
        return tx

    def sign_transaction(self, transaction: TxParams) -> bytes:
        try:
            signed_tx = self.account.sign_transaction(transaction)
        except Exception as e:
            raise TransactionError(
                f"Failed to sign transaction: {e}",
                from_address=self.account.address,
                cause=e
            )
        return signed_tx.raw_transaction

    async def send_transaction(self, transaction: TxParams) -> TransactionResult:
        """Sign and send `transaction`, then wait for one confirmation"""
        raw_tx = self.sign_transaction(transaction)

        try:
            tx_hash = await run_sync(self.web3.eth.send_raw_transaction, raw_tx)
        except Exception as e:
            raise TransactionError(
                f"Failed to send transaction: {e}",
                from_address=self.account.address,
                to_address=transaction.get('to'),
                cause=e
            )

        tx_hash_hex = Web3.to_hex(tx_hash)
        LOG.info(f"Transaction sent! Hash: {tx_hash_hex}")
        LOG.info("Waiting for confirmation...")

        receipt = await self._wait_for_receipt(tx_hash)
        result = TransactionResult(
            tx_hash=tx_hash_hex,
            tx_receipt=receipt,
            success=receipt['status'] == 1,
            gas_used=receipt.get('gasUsed'),
            block_number=receipt.get('blockNumber')
        )

        if not result.success:
            raise TransactionError(
                f"Transaction reverted in block {result.block_number}",
                tx_hash=tx_hash_hex,
                from_address=self.account.address,
                to_address=transaction.get('to'),
                code=ErrorCodes.TRANSACTION_REVERTED
            )

        LOG.info(f"Transaction confirmed! Block: {result.block_number}")
        return result

    async def _wait_for_receipt(self, tx_hash) -> TxReceipt:
        start_time = time.time()

        while True:
            try:
                receipt = await run_sync(self.web3.eth.get_transaction_receipt, tx_hash)
                if receipt is not None:
                    return receipt
            except TransactionNotFound:
                pass

            if time.time() - start_time > self.receipt_timeout:
                raise TransactionError(
                    f"Transaction receipt timeout after {self.receipt_timeout}s",
                    tx_hash=Web3.to_hex(tx_hash)
                )

            await asyncio.sleep(self.poll_latency)

    async def build_and_send_tx(self, to: str, data: Optional[str] = None) -> TransactionResult:
        tx = await self.build_transaction(to=to, data=data)
        return await self.send_transaction(tx)

    async def call_function(self, address: str, abi: List[dict], fn_name: str, *args) -> Any:
        """Read-only call of a view function"""
        contract = self.web3.eth.contract(address=Web3.to_checksum_address(address), abi=abi)
        fn = getattr(contract.functions, fn_name)(*args)
        return await run_sync(fn.call)
