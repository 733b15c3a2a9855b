"""
Pytest fixtures for chainlink-plug unit tests.

Provides a populated .env file, a loaded EnvStore, a real local signing
account and a mocked TransactionBuilder so that no test talks to a node,
forge or the block explorer.
"""

from pathlib import Path
from typing import Dict
from unittest.mock import AsyncMock, Mock

import pytest
from eth_account import Account

from chainlink_plug.utils.env_store import EnvStore

from .helpers import (
    ANVIL_DEPLOYER,
    ANVIL_PRIVATE_KEY,
    FORWARDER_TX_HASH,
    LINK_TOKEN_ADDRESS,
    REGISTRAR_ADDRESS,
    REGISTRATION_TX_HASH,
    ROUTER_ADDRESS,
    make_tx_result,
)


@pytest.fixture
def base_env() -> Dict[str, str]:
    return {
        "SCRIPT_PATH": "script/Deploy.s.sol:Deploy",
        "PRIVATE_KEY": ANVIL_PRIVATE_KEY,
        "RPC_URL": "http://127.0.0.1:8545",
        "CHAIN_ID": "421614",
        "ETHERSCAN_API_KEY": "test-etherscan-key",
        "ADMIN_ADDRESS": ANVIL_DEPLOYER,
        "AUTOMATION_REGISTRAR_ADDRESS": REGISTRAR_ADDRESS,
        "LINK_TOKEN_ADDRESS": LINK_TOKEN_ADDRESS,
        "AUTOMATION_GAS_LIMIT": "500000",
        "AUTOMATION_LINK_AMOUNT": "200000000000000000",
        "AUTOMATION_TRIGGER_TYPE": "0",
        "AUTOMATION_UPKEEP_NAME": "Test upkeep",
        "FUNCTIONS_ROUTER_ADDRESS": ROUTER_ADDRESS,
        "FUNCTIONS_SUBSCRIPTION_ID": "42",
    }


@pytest.fixture
def env_path(tmp_path) -> Path:
    return tmp_path / ".env"


@pytest.fixture
def store(env_path, base_env) -> EnvStore:
    """EnvStore backed by a populated .env file and an empty process environment"""
    lines = ["# Deployment configuration"]
    lines += [f"{key}={value}" for key, value in base_env.items()]
    env_path.write_text("\n".join(lines) + "\n", encoding="utf-8")

    env_store = EnvStore(env_path, environ={})
    assert env_store.load()
    return env_store


@pytest.fixture
def account():
    return Account.from_key(ANVIL_PRIVATE_KEY)


@pytest.fixture
def tx_builder(account):
    """TransactionBuilder stand-in that signs with a real key but never sends"""
    builder = Mock()
    builder.account = account
    builder.address = account.address
    builder.build_and_send_tx = AsyncMock(
        side_effect=[
            make_tx_result(REGISTRATION_TX_HASH),
            make_tx_result(FORWARDER_TX_HASH),
        ]
    )
    builder.call_function = AsyncMock(return_value=(True, 0, 0))
    return builder
