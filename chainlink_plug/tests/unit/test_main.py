"""
Unit tests for the command line entry point.
"""

from unittest.mock import AsyncMock, Mock, patch

import pytest

from chainlink_plug.main import build_parser, main
from chainlink_plug.pipeline import DeploymentRecord, DeploymentSummary
from chainlink_plug.utils.config_manager import DeployOptions, REQUIRED_ENV_VARS
from chainlink_plug.utils.exceptions import CommandError
from chainlink_plug.tests.helpers import CONTRACT_ADDRESS, FORWARDER_ADDRESS, FORWARDER_TX_HASH


@pytest.fixture(autouse=True)
def quiet_logging():
    with patch("chainlink_plug.main.setup_logging"):
        yield


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    for group in REQUIRED_ENV_VARS.values():
        for key in group:
            monkeypatch.delenv(key, raising=False)
    monkeypatch.delenv("CONTRACT_ADDRESS", raising=False)


def write_env(path, values):
    path.write_text("".join(f"{k}={v}\n" for k, v in values.items()), encoding="utf-8")
    return str(path)


def stub_pipeline(summary=None, error=None):
    """DeployPipeline replacement that keeps the real store"""
    created = []

    def factory(store):
        pipeline = Mock()
        created.append(pipeline)
        pipeline.store = store
        pipeline.tx_builder = Mock()
        pipeline.run = AsyncMock(return_value=summary, side_effect=error)
        return pipeline

    pipeline_cls = Mock(side_effect=factory)
    pipeline_cls.created = created
    return pipeline_cls


class TestParser:

    def test_flags(self):
        args = build_parser().parse_args(["-f", "-a"])

        assert args.functions and args.automation
        assert args.env_file == ".env"

    def test_maintenance_modes_are_exclusive(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["--forwarder-tx", "0x1", "--set-forwarder", "0x2"])


class TestMain:

    @pytest.mark.asyncio
    async def test_missing_configuration_exits_1(self, tmp_path):
        env_file = write_env(tmp_path / ".env", {"SCRIPT_PATH": "script/Deploy.s.sol"})

        assert await main(["--env-file", env_file, "-f"]) == 1

    @pytest.mark.asyncio
    async def test_successful_run(self, tmp_path, base_env):
        env_file = write_env(tmp_path / ".env", base_env)
        summary = DeploymentSummary(DeploymentRecord(CONTRACT_ADDRESS), DeployOptions(automation=True))
        pipeline_cls = stub_pipeline(summary=summary)

        with patch("chainlink_plug.main.DeployPipeline", pipeline_cls):
            assert await main(["--env-file", env_file, "-a"]) == 0

        store = pipeline_cls.call_args.args[0]
        assert store.get("CHAIN_ID") == "421614"
        pipeline_cls.created[0].run.assert_awaited_once_with(DeployOptions(functions=False, automation=True))

    @pytest.mark.asyncio
    async def test_failed_registrar_exits_1(self, tmp_path, base_env):
        env_file = write_env(tmp_path / ".env", base_env)
        summary = DeploymentSummary(
            DeploymentRecord(CONTRACT_ADDRESS),
            DeployOptions(functions=True),
            failed={"functions": "boom"}
        )

        with patch("chainlink_plug.main.DeployPipeline", stub_pipeline(summary=summary)):
            assert await main(["--env-file", env_file, "-f"]) == 1

    @pytest.mark.asyncio
    async def test_deploy_error_exits_1(self, tmp_path, base_env):
        env_file = write_env(tmp_path / ".env", base_env)
        error = CommandError("forge failed", returncode=1)

        with patch("chainlink_plug.main.DeployPipeline", stub_pipeline(error=error)):
            assert await main(["--env-file", env_file]) == 1

    @pytest.mark.asyncio
    async def test_unexpected_error_exits_1(self, tmp_path, base_env):
        env_file = write_env(tmp_path / ".env", base_env)

        with patch("chainlink_plug.main.DeployPipeline", stub_pipeline(error=RuntimeError("bug"))):
            assert await main(["--env-file", env_file]) == 1


class TestMaintenance:

    @pytest.mark.asyncio
    async def test_forwarder_tx(self, tmp_path, base_env):
        env_file = write_env(tmp_path / ".env", base_env)
        registrar = Mock()
        registrar.fetch_forwarder = AsyncMock(return_value=FORWARDER_ADDRESS)

        with patch("chainlink_plug.main.DeployPipeline", stub_pipeline()), \
                patch("chainlink_plug.main.AutomationRegistrar", return_value=registrar):
            assert await main(["--env-file", env_file, "--forwarder-tx", FORWARDER_TX_HASH]) == 0

        registrar.fetch_forwarder.assert_awaited_once_with(FORWARDER_TX_HASH)

    @pytest.mark.asyncio
    async def test_fetch_forwarder_requires_contract(self, tmp_path, base_env):
        env_file = write_env(tmp_path / ".env", base_env)
        registrar = Mock()
        registrar.fetch_forwarder = AsyncMock()

        with patch("chainlink_plug.main.DeployPipeline", stub_pipeline()), \
                patch("chainlink_plug.main.AutomationRegistrar", return_value=registrar):
            assert await main(["--env-file", env_file, "--fetch-forwarder", FORWARDER_TX_HASH]) == 1

        registrar.fetch_forwarder.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_fetch_forwarder_sets_contract(self, tmp_path, base_env):
        env_file = write_env(tmp_path / ".env", dict(base_env, CONTRACT_ADDRESS=CONTRACT_ADDRESS))
        registrar = Mock()
        registrar.fetch_forwarder = AsyncMock(return_value=FORWARDER_ADDRESS)

        with patch("chainlink_plug.main.DeployPipeline", stub_pipeline()), \
                patch("chainlink_plug.main.AutomationRegistrar", return_value=registrar):
            assert await main(["--env-file", env_file, "--fetch-forwarder", FORWARDER_TX_HASH]) == 0

        registrar.fetch_forwarder.assert_awaited_once_with(FORWARDER_TX_HASH, CONTRACT_ADDRESS)

    @pytest.mark.asyncio
    async def test_set_forwarder(self, tmp_path, base_env):
        env_file = write_env(tmp_path / ".env", dict(base_env, CONTRACT_ADDRESS=CONTRACT_ADDRESS))
        registrar = Mock()
        registrar.set_forwarder_address = AsyncMock()

        with patch("chainlink_plug.main.DeployPipeline", stub_pipeline()), \
                patch("chainlink_plug.main.AutomationRegistrar", return_value=registrar):
            assert await main(["--env-file", env_file, "--set-forwarder", FORWARDER_ADDRESS]) == 0

        registrar.set_forwarder_address.assert_awaited_once_with(CONTRACT_ADDRESS, FORWARDER_ADDRESS)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("allowed,exit_code", [(True, 0), (False, 1)])
    async def test_verify_consumer(self, tmp_path, base_env, allowed, exit_code):
        env_file = write_env(tmp_path / ".env", dict(base_env, CONTRACT_ADDRESS=CONTRACT_ADDRESS))
        registrar = Mock()
        registrar.verify_consumer = AsyncMock(return_value=allowed)

        with patch("chainlink_plug.main.DeployPipeline", stub_pipeline()), \
                patch("chainlink_plug.main.FunctionsRegistrar", return_value=registrar):
            assert await main(["--env-file", env_file, "--verify-consumer"]) == exit_code

        registrar.verify_consumer.assert_awaited_once_with(CONTRACT_ADDRESS)
