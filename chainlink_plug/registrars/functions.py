"""
Chainlink Functions integration

Uploads the DON-hosted secrets through an external helper command and adds
the deployed contract as a consumer of the Functions subscription.
"""

import logging
import re
import shlex
from typing import Optional

from web3 import Web3

from ..utils.command_runner import run_command
from ..utils.config_manager import FunctionsConfig
from ..utils.env_store import EnvStore
from ..utils.exceptions import ChainlinkPlugError, ErrorCodes, RegistrationError
from ..utils.transaction_builder import TransactionBuilder, TransactionResult
from .abi import encode_call

LOG = logging.getLogger(__name__)

SERVICE = "functions"
SECRETS_VERSION_ENV_KEY = "FUNCTIONS_SECRETS_VERSION"
DEFAULT_SECRETS_VERSION = "1"

GET_CONSUMER_ABI = [
    {
        "type": "function",
        "name": "getConsumer",
        "stateMutability": "view",
        "inputs": [
            {"name": "client", "type": "address"},
            {"name": "subscriptionId", "type": "uint64"},
        ],
        "outputs": [
            {
                "name": "",
                "type": "tuple",
                "components": [
                    {"name": "allowed", "type": "bool"},
                    {"name": "initiatedRequests", "type": "uint64"},
                    {"name": "completedRequests", "type": "uint64"},
                ],
            }
        ],
    }
]

_INTEGER = re.compile(r"\b\d+\b")


def parse_secrets_version(output: str) -> Optional[str]:
    """The upload helper prints the DON secrets version last"""
    numbers = _INTEGER.findall(output)
    return numbers[-1] if numbers else None


class FunctionsRegistrar:
    """Secrets upload and consumer registration for one deployed contract"""

    def __init__(
        self,
        store: EnvStore,
        config: FunctionsConfig,
        tx_builder: TransactionBuilder
    ):
        self.store = store
        self.config = config
        self.tx_builder = tx_builder

    async def setup_functions(self) -> str:
        """
        Upload secrets and persist the resulting secrets version.

        Falls back to version "1" when the upload fails.

        Raises:
            RegistrationError: the version could not be written to the .env file
        """
        LOG.info("🔐 Setting up Chainlink Functions")

        version = None
        if not self.config.secrets_command:
            LOG.warning("FUNCTIONS_SECRETS_COMMAND not set, skipping secrets upload")
        else:
            try:
                output = await run_command(
                    shlex.split(self.config.secrets_command),
                    env=self.store.as_environ()
                )
                version = parse_secrets_version(output)
            except (ChainlinkPlugError, ValueError) as e:
                LOG.warning(f"⚠️ Secrets upload failed: {e}")

        if version is None:
            LOG.info(f"Using default version: {DEFAULT_SECRETS_VERSION}")
            version = DEFAULT_SECRETS_VERSION

        LOG.info(f"📝 Secrets version: {version}")
        if not self.store.set(SECRETS_VERSION_ENV_KEY, version):
            raise RegistrationError(
                f"Failed to update {SECRETS_VERSION_ENV_KEY} in .env file",
                SERVICE,
                code=ErrorCodes.ENV_WRITE_FAILED
            )

        self.config.secrets_version = version
        return version

    async def add_consumer(self, contract_address: str) -> TransactionResult:
        """Authorize `contract_address` on the Functions subscription"""
        if not contract_address or not self.config.router_address:
            raise RegistrationError(
                "Missing required parameters for adding Functions consumer",
                SERVICE
            )

        LOG.info(f"🔄 Adding {contract_address} as Functions Consumer")
        try:
            data = encode_call(
                "addConsumer(uint64,address)",
                ["uint64", "address"],
                [self.config.subscription_id, Web3.to_checksum_address(contract_address)]
            )
            result = await self.tx_builder.build_and_send_tx(
                to=Web3.to_checksum_address(self.config.router_address),
                data=data
            )
        except Exception as e:
            LOG.debug("Adding Functions consumer aborted", exc_info=True)
            raise RegistrationError(f"Failed to add Functions consumer: {e}", SERVICE, cause=e)

        LOG.info(
            f"✅ Successfully added {contract_address} as consumer to "
            f"Functions subscription {self.config.subscription_id}"
        )
        return result

    async def verify_consumer(self, contract_address: str) -> bool:
        """True if the router reports `contract_address` as an allowed consumer"""
        try:
            consumer = await self.tx_builder.call_function(
                self.config.router_address,
                GET_CONSUMER_ABI,
                "getConsumer",
                Web3.to_checksum_address(contract_address),
                self.config.subscription_id
            )
        except Exception as e:
            LOG.warning(f"Failed to verify consumer status: {e}")
            return False
        return bool(consumer[0])
