"""
chainlink-plug tests

Unit tests run fully offline: forge, the JSON-RPC endpoint and the block
explorer are replaced with mocks.

    pytest chainlink_plug/tests/ -v
"""
