"""
Contract address extraction from forge script output

The rules are evaluated in order and the first match wins. Rules that match
on a label capture any run of hex characters and `x`, so the capture is not
guaranteed to be a well-formed address; callers check it with
is_valid_address().
"""

import logging
import re
from dataclasses import dataclass
from typing import Optional, Pattern, Sequence

from web3 import Web3

LOG = logging.getLogger(__name__)


@dataclass(frozen=True)
class AddressRule:
    """A named pattern whose first group captures the address"""
    name: str
    pattern: Pattern[str]

    def match(self, output: str) -> Optional[str]:
        found = self.pattern.search(output)
        if found and found.group(1):
            return found.group(1)
        return None


def rule(name: str, regex: str, flags: int = 0) -> AddressRule:
    return AddressRule(name, re.compile(regex, flags))


DEFAULT_RULES: Sequence[AddressRule] = (
    rule("contract-address", r"Contract Address: ([0-9a-fA-Fx]+)"),
    rule("deployed-to", r"Deployed to: ([0-9a-fA-Fx]+)"),
    rule("deployed-at", r"deployed at: ([0-9a-fA-Fx]+)", re.IGNORECASE),
    rule("dstock-deployed-at", r"DStock deployed at: ([0-9a-fA-Fx]+)", re.IGNORECASE),
    rule("test-usdc-deployed-at", r"Test_USDC deployed at: ([0-9a-fA-Fx]+)", re.IGNORECASE),
    rule("logs-first-line", r"== Logs ==\s*\n\s*(0x[a-fA-F0-9]{40})"),
    rule("verifying-contract", r"Start verifying contract `(0x[a-fA-F0-9]{40})`"),
)


def extract_address(output: str, rules: Sequence[AddressRule] = DEFAULT_RULES) -> Optional[str]:
    """
    Return the address captured by the first matching rule, or None.
    """
    for address_rule in rules:
        address = address_rule.match(output)
        if address:
            LOG.info(f"Found address using pattern '{address_rule.name}': {address}")
            return address

    LOG.warning("No address found in output")
    return None


def is_valid_address(value: Optional[str]) -> bool:
    """True for a 0x-prefixed 20-byte hex string with a valid (or absent) checksum"""
    if not value or not value.startswith("0x"):
        return False
    return Web3.is_address(value)
