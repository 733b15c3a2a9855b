"""
Deployment pipeline

validate config -> forge deploy -> extract address -> persist
    -> (optional) Chainlink Functions -> (optional) Chainlink Automation

Every step runs to completion before the next one starts. A failing
registrar aborts its own sequence only; the other selected registrar still
runs and the overall run is reported as failed.
"""

import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Dict, List, Optional

from .registrars.automation import AutomationRegistrar
from .registrars.functions import FunctionsRegistrar
from .utils.address_extractor import extract_address, is_valid_address
from .utils.command_runner import run_command
from .utils.config_manager import (
    DeployOptions,
    NetworkConfig,
    ensure_valid,
    get_automation_config,
    get_functions_config,
    get_network_config,
)
from .utils.env_store import EnvStore
from .utils.exceptions import (
    ChainlinkPlugError,
    ConfigurationError,
    DeploymentError,
    ErrorCodes,
)
from .utils.transaction_builder import TransactionBuilder, TransactionOptions

LOG = logging.getLogger(__name__)

CONTRACT_ADDRESS_ENV_KEY = "CONTRACT_ADDRESS"

CommandRunner = Callable[..., Awaitable[str]]


@dataclass(frozen=True)
class DeploymentRecord:
    """Deployed contract address and the .env key it was stored under"""
    address: str
    env_key: str = CONTRACT_ADDRESS_ENV_KEY


@dataclass
class DeploymentSummary:
    record: DeploymentRecord
    options: DeployOptions
    completed: List[str] = field(default_factory=list)
    failed: Dict[str, str] = field(default_factory=dict)

    @property
    def success(self) -> bool:
        return not self.failed


def forge_command(script_path: str, network: NetworkConfig) -> List[str]:
    return [
        "forge", "script", script_path,
        "--private-key", network.private_key,
        "--rpc-url", network.rpc_url,
        "--etherscan-api-key", network.etherscan_api_key,
        "--broadcast",
        "--verify",
        "-vvv",
    ]


class DeployPipeline:
    """
    Deploys the contract from SCRIPT_PATH and wires up the selected services.

    Args:
        store: Loaded configuration store
        runner: Coroutine used to execute external commands
        tx_builder_factory: Builds the signer used by the registrars
    """

    def __init__(
        self,
        store: EnvStore,
        runner: CommandRunner = run_command,
        tx_builder_factory: Optional[Callable[[NetworkConfig], TransactionBuilder]] = None
    ):
        self.store = store
        self.runner = runner
        self.tx_builder_factory = tx_builder_factory or (
            lambda network: TransactionBuilder.from_private_key(
                network.rpc_url,
                network.private_key,
                default_options=TransactionOptions(chain_id=network.chain_id)
            )
        )
        self._tx_builder: Optional[TransactionBuilder] = None

    @property
    def network(self) -> NetworkConfig:
        return get_network_config(self.store)

    @property
    def tx_builder(self) -> TransactionBuilder:
        if self._tx_builder is None:
            self._tx_builder = self.tx_builder_factory(self.network)
        return self._tx_builder

    async def deploy_contract(
        self,
        script_path: str,
        env_key: str = CONTRACT_ADDRESS_ENV_KEY
    ) -> DeploymentRecord:
        """
        Run the forge deploy script and persist the deployed address.

        Raises:
            ConfigurationError: credentials are missing
            CommandError: forge exited with a non-zero status
            DeploymentError: no usable address in the output, or the .env
                file could not be updated
        """
        LOG.info("📄 Deploying Contract")
        network = self.network
        if not network.private_key or not network.rpc_url or not network.etherscan_api_key:
            raise ConfigurationError("Missing required environment variables for deployment")

        output = await self.runner(
            forge_command(script_path, network),
            env=self.store.as_environ(),
            redact=[network.private_key, network.etherscan_api_key]
        )

        address = extract_address(output)
        if not address:
            raise DeploymentError(
                "Failed to extract contract address from deployment output",
                code=ErrorCodes.ADDRESS_NOT_FOUND
            )
        if not is_valid_address(address):
            raise DeploymentError(
                f"Extracted value is not a valid contract address: {address}",
                code=ErrorCodes.ADDRESS_MALFORMED,
                details={"address": address}
            )

        LOG.info(f"✅ Contract deployed at: {address}")

        if not self.store.set(env_key, address):
            raise DeploymentError(
                f"Failed to update {env_key} in .env file",
                code=ErrorCodes.ENV_WRITE_FAILED
            )

        return DeploymentRecord(address=address, env_key=env_key)

    async def setup_functions(self, address: str) -> None:
        registrar = FunctionsRegistrar(
            self.store,
            get_functions_config(self.store),
            self.tx_builder
        )
        await registrar.setup_functions()
        await registrar.add_consumer(address)

    async def setup_automation(self, address: str) -> None:
        registrar = AutomationRegistrar(
            self.store,
            self.network,
            get_automation_config(self.store),
            self.tx_builder
        )
        await registrar.register(address)

    async def run(self, options: DeployOptions) -> DeploymentSummary:
        """
        Execute the full pipeline.

        Configuration and deployment failures raise; registrar failures are
        collected in the returned summary.
        """
        LOG.info("🚀 Starting deployment process")
        LOG.info(
            f"Options: functions={'enabled' if options.functions else 'disabled'}, "
            f"automation={'enabled' if options.automation else 'disabled'}"
        )

        LOG.info("🔍 Validating configuration...")
        ensure_valid(self.store, options)
        LOG.info("✅ Configuration validation passed")

        script_path = self.store.get("SCRIPT_PATH")
        record = await self.deploy_contract(script_path)
        LOG.info("==== Deployment Complete ====")

        summary = DeploymentSummary(record=record, options=options)

        steps = []
        if options.functions:
            steps.append(("functions", self.setup_functions))
        if options.automation:
            steps.append(("automation", self.setup_automation))

        for service, step in steps:
            try:
                await step(record.address)
                summary.completed.append(service)
            except ChainlinkPlugError as e:
                LOG.error(f"❌ {service} setup failed: {e}")
                summary.failed[service] = str(e)

        self.log_summary(summary)
        return summary

    def log_summary(self, summary: DeploymentSummary) -> None:
        if summary.success:
            LOG.info("🚀 Full deployment pipeline completed successfully!")
        else:
            LOG.error("Deployment pipeline completed with failures")

        LOG.info("📋 Summary:")
        LOG.info(f"   • Contract deployed: {summary.record.address}")
        if "functions" in summary.completed:
            LOG.info("   • Chainlink Functions enabled")
            LOG.info(f"   • Added to Functions subscription: {self.store.get('FUNCTIONS_SUBSCRIPTION_ID')}")
        if "automation" in summary.completed:
            LOG.info(f"   • Chainlink Automation forwarder configured: {self.store.get('AUTOMATION_FORWARDER_ADDRESS')}")
        for service, error in summary.failed.items():
            LOG.info(f"   • {service} failed: {error}")
        LOG.info("   • Environment file updated")
