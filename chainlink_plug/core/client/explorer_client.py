"""
Etherscan v2 API client
Looks up contracts created by internal transactions (e.g. automation forwarders)
"""
import asyncio
import logging
from typing import Dict, List, Optional

import aiohttp

from ...utils.exceptions import ErrorCodes, ExplorerError

LOG = logging.getLogger(__name__)


class ExplorerClient:
    """Etherscan-compatible explorer client, parameterized by chain id"""

    def __init__(
        self,
        api_key: str,
        chain_id: int,
        base_url: str = "https://api.etherscan.io/v2/api",
        timeout: float = 30.0
    ):
        """
        Initialize explorer client

        Args:
            api_key: Etherscan API key
            chain_id: Chain to query (e.g. 421614 for Arbitrum Sepolia)
            base_url: API endpoint
            timeout: Request timeout (seconds)
        """
        self.api_key = api_key
        self.chain_id = chain_id
        self.base_url = base_url
        self.timeout = timeout
        self.session: Optional[aiohttp.ClientSession] = None

    async def __aenter__(self):
        self.session = aiohttp.ClientSession(
            timeout=aiohttp.ClientTimeout(total=self.timeout)
        )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        if self.session:
            await self.session.close()
            self.session = None

    async def get_internal_transactions(self, tx_hash: str) -> List[Dict]:
        """
        Get internal transactions of a transaction

        Returns:
            List of internal transaction records

        Raises:
            ExplorerError: HTTP failure or API status other than "1"
        """
        if not self.session:
            raise RuntimeError("Client not initialized. Use 'async with' statement.")

        params = {
            "chainid": str(self.chain_id),
            "module": "account",
            "action": "txlistinternal",
            "txhash": tx_hash,
            "apikey": self.api_key,
        }
        LOG.debug(f"Querying internal transactions for {tx_hash} on chain {self.chain_id}")

        try:
            async with self.session.get(self.base_url, params=params) as resp:
                if resp.status != 200:
                    text = await resp.text()
                    raise ExplorerError(
                        f"Explorer request failed: {resp.status} - {text}",
                        code=ErrorCodes.EXPLORER_HTTP_ERROR
                    )
                data = await resp.json(content_type=None)
        except asyncio.TimeoutError as e:
            raise ExplorerError(
                f"Explorer request timed out after {self.timeout}s",
                code=ErrorCodes.EXPLORER_HTTP_ERROR,
                cause=e
            )
        except aiohttp.ClientError as e:
            raise ExplorerError(
                f"HTTP request failed: {e}",
                code=ErrorCodes.EXPLORER_HTTP_ERROR,
                cause=e
            )

        if data.get("status") != "1":
            raise ExplorerError(
                f"API error: {data.get('message')} ({data.get('result')})",
                code=ErrorCodes.EXPLORER_API_ERROR,
                details={"tx_hash": tx_hash}
            )

        return data.get("result") or []

    async def find_created_contract(self, tx_hash: str) -> Optional[str]:
        """
        Get the address of the first contract created inside a transaction

        Returns:
            Contract address, or None if the transaction created none
        """
        for internal_tx in await self.get_internal_transactions(tx_hash):
            if internal_tx.get("type") == "create" and internal_tx.get("contractAddress"):
                address = internal_tx["contractAddress"]
                LOG.info(f"Found created contract {address} in {tx_hash}")
                return address

        LOG.warning(f"No contract creation found in internal transactions of {tx_hash}")
        return None
