"""
Chainlink Automation registration

Registers and funds an upkeep for the deployed contract in a single
transferAndCall on the LINK token, recovers the forwarder contract the
registry created for it and points the deployed contract at that forwarder.
"""

import logging
from dataclasses import astuple, dataclass
from typing import Callable, Optional

from eth_abi import encode
from eth_account.messages import encode_defunct
from web3 import Web3

from ..core.client.explorer_client import ExplorerClient
from ..utils.async_retry import AsyncRetry
from ..utils.config_manager import AutomationConfig, NetworkConfig
from ..utils.env_store import EnvStore
from ..utils.exceptions import ErrorCodes, RegistrationError
from ..utils.transaction_builder import TransactionBuilder, TransactionResult
from .abi import as_hex, encode_call, event_topic, topic_to_address

LOG = logging.getLogger(__name__)

SERVICE = "automation"
FORWARDER_ENV_KEY = "AUTOMATION_FORWARDER_ADDRESS"

# registerUpkeep entry point reached through transferAndCall
REGISTER_UPKEEP_SELECTOR = bytes.fromhex("856853e6")
REGISTRATION_TYPES = [
    "string",   # name
    "bytes",    # encryptedEmail
    "address",  # upkeepContract
    "uint32",   # gasLimit
    "address",  # adminAddress
    "uint8",    # triggerType
    "bytes",    # checkData
    "bytes",    # triggerConfig
    "bytes",    # offchainConfig
    "uint96",   # amount
    "address",  # sender
]

FORWARDER_UPDATED_TOPIC = event_topic("ForwarderAddressUpdated(address,address)")

OWNERSHIP_MESSAGE = (
    "Welcome to Chainlink Automation!\n"
    "We require a signature in order to ensure you are the owner of the upkeep.\n\n"
    "Wallet address:\n{wallet}\n"
    "Registrar address:\n{registrar}\n"
    "Upkeep registration hash:\n{registration_hash}"
)


@dataclass
class RegistrationParams:
    """Registration request sent to the automation registrar"""
    name: str
    encrypted_email: bytes
    upkeep_contract: str
    gas_limit: int
    admin_address: str
    trigger_type: int
    check_data: bytes
    trigger_config: bytes
    offchain_config: bytes
    amount: int
    sender: str

    @classmethod
    def for_contract(
        cls,
        contract_address: str,
        admin_address: str,
        config: AutomationConfig
    ) -> "RegistrationParams":
        admin = Web3.to_checksum_address(admin_address)
        return cls(
            name=config.upkeep_name,
            encrypted_email=b"",
            upkeep_contract=Web3.to_checksum_address(contract_address),
            gas_limit=config.gas_limit,
            admin_address=admin,
            trigger_type=config.trigger_type,
            check_data=b"",
            trigger_config=b"",
            offchain_config=b"",
            amount=config.link_amount,
            sender=admin,
        )


def encode_registration(params: RegistrationParams) -> bytes:
    """registerUpkeep calldata: selector followed by the 11 ABI-encoded fields"""
    return REGISTER_UPKEEP_SELECTOR + encode(REGISTRATION_TYPES, list(astuple(params)))


def ownership_message(wallet: str, registrar: str, registration_hash: str) -> str:
    return OWNERSHIP_MESSAGE.format(
        wallet=wallet,
        registrar=registrar,
        registration_hash=registration_hash,
    )


class AutomationRegistrar:
    """
    Runs the automation sequence for one deployed contract.

    Any failing step raises RegistrationError and the remaining steps are
    skipped.
    """

    def __init__(
        self,
        store: EnvStore,
        network: NetworkConfig,
        config: AutomationConfig,
        tx_builder: TransactionBuilder,
        explorer_factory: Optional[Callable[[], ExplorerClient]] = None,
        retry: Optional[AsyncRetry] = None
    ):
        self.store = store
        self.network = network
        self.config = config
        self.tx_builder = tx_builder
        self.explorer_factory = explorer_factory or (
            lambda: ExplorerClient(
                network.etherscan_api_key,
                network.chain_id,
                base_url=network.etherscan_api_url
            )
        )
        self.retry = retry or AsyncRetry(max_attempts=network.explorer_max_attempts)

    async def register(self, contract_address: str) -> str:
        """
        Register an upkeep for `contract_address` and configure its forwarder.

        Returns:
            The forwarder address
        """
        LOG.info("⚙️ Setting up Chainlink Automation")
        LOG.info(f"Using upkeep name: {self.config.upkeep_name}")

        try:
            result = await self.transfer_and_register(contract_address)
            self.sign_ownership_message(result.tx_hash)
            forwarder = await self.lookup_forwarder(result.tx_hash)
            await self.set_forwarder_address(contract_address, forwarder)
        except RegistrationError:
            raise
        except Exception as e:
            LOG.debug("Automation setup aborted", exc_info=True)
            raise RegistrationError(f"Failed to register automation: {e}", SERVICE, cause=e)

        LOG.info("✅ Automation setup completed successfully")
        return forwarder

    async def transfer_and_register(self, contract_address: str) -> TransactionResult:
        """Fund and register the upkeep via LINK transferAndCall"""
        LOG.info("==== Registering and Funding Upkeep via transferAndCall ====")
        admin = self.network.admin_address or self.tx_builder.address
        params = RegistrationParams.for_contract(contract_address, admin, self.config)
        registration = encode_registration(params)
        LOG.debug(f"Encoded registerUpkeep data: {Web3.to_hex(registration)}")

        data = encode_call(
            "transferAndCall(address,uint256,bytes)",
            ["address", "uint256", "bytes"],
            [Web3.to_checksum_address(self.config.registrar_address), params.amount, registration]
        )
        return await self.tx_builder.build_and_send_tx(
            to=Web3.to_checksum_address(self.config.link_token_address),
            data=data
        )

    def sign_ownership_message(self, registration_hash: str) -> str:
        """Sign the registry's upkeep ownership message with the deployer key"""
        message = ownership_message(
            self.network.admin_address or self.tx_builder.address,
            self.config.registrar_address,
            registration_hash,
        )
        signed = self.tx_builder.account.sign_message(encode_defunct(text=message))
        signature = Web3.to_hex(signed.signature)
        LOG.info(f"Signature for Chainlink Automation registration: {signature}")
        return signature

    async def lookup_forwarder(self, tx_hash: str) -> str:
        """Find the forwarder created by the registration and persist it"""
        async with self.explorer_factory() as explorer:
            forwarder = await self.retry.execute(explorer.find_created_contract, tx_hash)

        if not forwarder:
            raise RegistrationError(
                f"No contract creation found in transaction {tx_hash}",
                SERVICE,
                details={"tx_hash": tx_hash}
            )

        if not self.store.set(FORWARDER_ENV_KEY, forwarder):
            raise RegistrationError(
                f"Failed to update {FORWARDER_ENV_KEY} in .env file",
                SERVICE,
                code=ErrorCodes.ENV_WRITE_FAILED
            )
        LOG.info(f"Saved {FORWARDER_ENV_KEY}={forwarder} to .env")
        return forwarder

    async def set_forwarder_address(self, contract_address: str, forwarder: str) -> TransactionResult:
        """Call setForwarderAddress(forwarder) on the deployed contract"""
        LOG.info("==== Setting Forwarder Address ====")
        LOG.info(f"Contract: {contract_address}")
        LOG.info(f"Forwarder: {forwarder}")

        data = encode_call(
            "setForwarderAddress(address)",
            ["address"],
            [Web3.to_checksum_address(forwarder)]
        )
        result = await self.tx_builder.build_and_send_tx(
            to=Web3.to_checksum_address(contract_address),
            data=data
        )

        for log_entry in (result.tx_receipt or {}).get("logs", []):
            topics = log_entry.get("topics", [])
            if len(topics) == 3 and as_hex(topics[0]) == FORWARDER_UPDATED_TOPIC:
                LOG.info("ForwarderAddressUpdated event emitted:")
                LOG.info(f"  Old forwarder: {topic_to_address(topics[1])}")
                LOG.info(f"  New forwarder: {topic_to_address(topics[2])}")
                break

        LOG.info(f"✅ Forwarder address set in contract! Transaction: {result.tx_hash}")
        return result

    async def fetch_forwarder(self, tx_hash: str, contract_address: Optional[str] = None) -> str:
        """
        Recover the forwarder of an earlier registration.

        When `contract_address` is given the contract is also configured with it.
        """
        LOG.info(f"Fetching forwarder address for tx: {tx_hash}")
        try:
            forwarder = await self.lookup_forwarder(tx_hash)
            if contract_address:
                await self.set_forwarder_address(contract_address, forwarder)
        except RegistrationError:
            raise
        except Exception as e:
            LOG.debug("Forwarder lookup aborted", exc_info=True)
            raise RegistrationError(f"Failed to fetch forwarder address: {e}", SERVICE, cause=e)
        return forwarder
