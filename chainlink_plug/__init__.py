"""
chainlink-plug

Deploys a contract with forge and optionally wires it into Chainlink
Functions and Chainlink Automation.
"""

__version__ = "0.1.0"
