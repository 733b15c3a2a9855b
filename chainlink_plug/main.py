#!/usr/bin/env python3
import argparse
import asyncio
import logging
import sys
from typing import List, Optional

from .pipeline import CONTRACT_ADDRESS_ENV_KEY, DeployPipeline
from .registrars.automation import AutomationRegistrar
from .registrars.functions import FunctionsRegistrar
from .utils.config_manager import (
    DeployOptions,
    get_automation_config,
    get_functions_config,
    get_network_config,
)
from .utils.env_store import DEFAULT_ENV_PATH, EnvStore
from .utils.exceptions import ChainlinkPlugError
from .utils.logging import setup_logging

LOG = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Deploy a contract with forge and wire up Chainlink Functions / Automation"
    )
    parser.add_argument("-f", "--functions", action="store_true",
                        help="Upload secrets and add the contract as a Functions consumer")
    parser.add_argument("-a", "--automation", action="store_true",
                        help="Register an Automation upkeep and configure its forwarder")
    parser.add_argument("--env-file", default=DEFAULT_ENV_PATH,
                        help="Path to the .env file")
    parser.add_argument("--log-level", default="INFO",
                        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
                        help="Logging level")
    parser.add_argument("--log-file", default=None,
                        help="Path to log file")

    maintenance = parser.add_mutually_exclusive_group()
    maintenance.add_argument("--forwarder-tx", metavar="TX_HASH",
                             help="Save the forwarder created by a registration tx, then exit")
    maintenance.add_argument("--fetch-forwarder", metavar="TX_HASH",
                             help="Save the forwarder of a registration tx and set it in the contract")
    maintenance.add_argument("--set-forwarder", metavar="ADDRESS",
                             help="Set the forwarder address in the deployed contract")
    maintenance.add_argument("--verify-consumer", action="store_true",
                             help="Check that the deployed contract is a Functions consumer")
    return parser


def _automation_registrar(pipeline: DeployPipeline) -> AutomationRegistrar:
    store = pipeline.store
    return AutomationRegistrar(
        store,
        get_network_config(store),
        get_automation_config(store),
        pipeline.tx_builder
    )


async def run_maintenance(args, pipeline: DeployPipeline) -> int:
    """Standalone recovery steps that operate on an already deployed contract"""
    store = pipeline.store

    if args.forwarder_tx:
        store.require(["ETHERSCAN_API_KEY", "PRIVATE_KEY", "RPC_URL"])
        await _automation_registrar(pipeline).fetch_forwarder(args.forwarder_tx)
        return 0

    store.require([CONTRACT_ADDRESS_ENV_KEY, "PRIVATE_KEY", "RPC_URL"])
    contract_address = store.get(CONTRACT_ADDRESS_ENV_KEY)

    if args.fetch_forwarder:
        store.require(["ETHERSCAN_API_KEY"])
        await _automation_registrar(pipeline).fetch_forwarder(args.fetch_forwarder, contract_address)
        return 0

    if args.set_forwarder:
        await _automation_registrar(pipeline).set_forwarder_address(contract_address, args.set_forwarder)
        return 0

    store.require(["FUNCTIONS_ROUTER_ADDRESS", "FUNCTIONS_SUBSCRIPTION_ID"])
    registrar = FunctionsRegistrar(store, get_functions_config(store), pipeline.tx_builder)
    if await registrar.verify_consumer(contract_address):
        LOG.info(f"✅ {contract_address} is an authorized Functions consumer")
        return 0
    LOG.error(f"❌ {contract_address} is not an authorized Functions consumer")
    return 1


async def main(argv: Optional[List[str]] = None) -> int:
    """Main execution flow"""
    args = build_parser().parse_args(argv)
    setup_logging(args.log_level, args.log_file)

    store = EnvStore(args.env_file)
    store.load()
    pipeline = DeployPipeline(store)

    try:
        if args.forwarder_tx or args.fetch_forwarder or args.set_forwarder or args.verify_consumer:
            return await run_maintenance(args, pipeline)

        options = DeployOptions(functions=args.functions, automation=args.automation)
        summary = await pipeline.run(options)
        return 0 if summary.success else 1

    except ChainlinkPlugError as e:
        LOG.error(f"❌ Deployment failed: {e}")
        return 1
    except Exception as e:
        LOG.error(f"❌ Unexpected error: {e}", exc_info=True)
        return 1


def cli() -> None:
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    cli()
