"""
Configuration validation and typed views over the EnvStore

Design Notes:
- Required keys depend on which services are enabled for the run
- All missing keys are reported at once rather than one per attempt
- Typed dataclasses are built from the store so registrars never read raw
  strings themselves
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, tzinfo
from typing import Dict, List, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .env_store import EnvStore
from .exceptions import ConfigurationError

LOG = logging.getLogger(__name__)

REQUIRED_ENV_VARS: Dict[str, List[str]] = {
    "common": [
        "SCRIPT_PATH",
        "PRIVATE_KEY",
        "RPC_URL",
        "CHAIN_ID",
        "ETHERSCAN_API_KEY",
        "ADMIN_ADDRESS",
    ],
    "automation": [
        "AUTOMATION_REGISTRAR_ADDRESS",
        "LINK_TOKEN_ADDRESS",
        "AUTOMATION_GAS_LIMIT",
        "AUTOMATION_LINK_AMOUNT",
        "AUTOMATION_TRIGGER_TYPE",
    ],
    "functions": [
        "FUNCTIONS_ROUTER_ADDRESS",
        "FUNCTIONS_SUBSCRIPTION_ID",
    ],
    "optional": [
        "ALPACA_API_KEY",
        "ALPACA_SECRET_KEY",
        "USDC_TOKEN_ADDRESS",
    ],
}

DEFAULT_ETHERSCAN_API_URL = "https://api.etherscan.io/v2/api"
DEFAULT_GAS_LIMIT = 500000
# 0.2 LINK in juels
DEFAULT_LINK_AMOUNT = "200000000000000000"


@dataclass
class DeployOptions:
    """Services enabled for a run"""
    functions: bool = False
    automation: bool = False


@dataclass
class ValidationResult:
    """Result of configuration validation"""
    is_valid: bool
    missing: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)


@dataclass
class NetworkConfig:
    private_key: str
    rpc_url: str
    chain_id: int
    etherscan_api_key: Optional[str]
    etherscan_api_url: str = DEFAULT_ETHERSCAN_API_URL
    admin_address: Optional[str] = None
    explorer_max_attempts: int = 5


@dataclass
class AutomationConfig:
    registrar_address: str
    link_token_address: str
    gas_limit: int
    link_amount: int
    trigger_type: int
    upkeep_name: str


@dataclass
class FunctionsConfig:
    router_address: str
    subscription_id: int
    secrets_version: str = "1"
    secrets_command: Optional[str] = None


def validate_config(store: EnvStore, options: DeployOptions) -> ValidationResult:
    """Check that every key required by the enabled services is set"""
    groups = ["common"]
    if options.automation:
        groups.append("automation")
    if options.functions:
        groups.append("functions")

    missing = [
        key
        for group in groups
        for key in REQUIRED_ENV_VARS[group]
        if store.get(key) is None
    ]
    warnings = [
        f"Optional variable {key} is not set"
        for key in REQUIRED_ENV_VARS["optional"]
        if store.get(key) is None
    ]
    return ValidationResult(is_valid=not missing, missing=missing, warnings=warnings)


def ensure_valid(store: EnvStore, options: DeployOptions) -> None:
    """
    Raises:
        ConfigurationError: listing every missing key
    """
    result = validate_config(store, options)
    for warning in result.warnings:
        LOG.debug(warning)

    if not result.is_valid:
        raise ConfigurationError(
            "Missing required environment variables:\n"
            + "\n".join(result.missing)
            + "\nPlease check your .env file and ensure all required variables are set.",
            missing=result.missing,
            config_file=str(store.path)
        )


def _parse_int(store: EnvStore, key: str, default: Optional[str] = None) -> int:
    raw = store.get(key, default)
    try:
        return int(raw, 0)
    except (TypeError, ValueError):
        raise ConfigurationError(f"{key} must be an integer, got {raw!r}", config_file=str(store.path))


def get_network_config(store: EnvStore) -> NetworkConfig:
    return NetworkConfig(
        private_key=store.get("PRIVATE_KEY"),
        rpc_url=store.get("RPC_URL"),
        chain_id=store.get_int("CHAIN_ID", 1),
        etherscan_api_key=store.get("ETHERSCAN_API_KEY"),
        etherscan_api_url=store.get("ETHERSCAN_API_URL", DEFAULT_ETHERSCAN_API_URL),
        admin_address=store.get("ADMIN_ADDRESS"),
        explorer_max_attempts=store.get_int("EXPLORER_MAX_RETRIES", 5),
    )


def get_automation_config(store: EnvStore, now: Optional[datetime] = None) -> AutomationConfig:
    return AutomationConfig(
        registrar_address=store.get("AUTOMATION_REGISTRAR_ADDRESS"),
        link_token_address=store.get("LINK_TOKEN_ADDRESS"),
        gas_limit=store.get_int("AUTOMATION_GAS_LIMIT", DEFAULT_GAS_LIMIT),
        link_amount=_parse_int(store, "AUTOMATION_LINK_AMOUNT", DEFAULT_LINK_AMOUNT),
        trigger_type=store.get_int("AUTOMATION_TRIGGER_TYPE", 0),
        upkeep_name=store.get("AUTOMATION_UPKEEP_NAME")
        or generate_upkeep_name(timezone=store.get("TIMEZONE"), now=now),
    )


def get_functions_config(store: EnvStore) -> FunctionsConfig:
    return FunctionsConfig(
        router_address=store.get("FUNCTIONS_ROUTER_ADDRESS"),
        subscription_id=_parse_int(store, "FUNCTIONS_SUBSCRIPTION_ID"),
        secrets_version=store.get("FUNCTIONS_SECRETS_VERSION", "1"),
        secrets_command=store.get("FUNCTIONS_SECRETS_COMMAND"),
    )


def _resolve_timezone(name: Optional[str]) -> Optional[tzinfo]:
    if not name:
        return None
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        LOG.warning(f"Unknown timezone {name!r}, falling back to system timezone")
        return None


def generate_upkeep_name(
    prefix: str = "Test",
    timezone: Optional[str] = None,
    now: Optional[datetime] = None
) -> str:
    """
    Upkeep name stamped with the local time, e.g. "Test 14:30_25/12".

    The timezone defaults to the system's local zone.
    """
    tz = _resolve_timezone(timezone)
    if now is None:
        now = datetime.now(tz) if tz else datetime.now().astimezone()
    elif tz is not None:
        now = now.astimezone(tz)

    return f"{prefix} {now:%H:%M}_{now.day}/{now.month}"
