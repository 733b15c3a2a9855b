from setuptools import setup, find_packages

setup(
    name="chainlink-plug",
    version="0.1.0",
    description="Deploy a contract with forge and wire up Chainlink Functions and Automation",
    packages=find_packages(exclude=["chainlink_plug.tests", "chainlink_plug.tests.*"]),
    install_requires=[
        "web3>=7.0.0",
        "eth-account>=0.13.0",
        "eth-abi>=5.0.0",
        "hexbytes>=1.0.0",
        "aiohttp>=3.8.0",
        "python-dotenv>=1.0.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0.0",
            "pytest-asyncio>=0.21.0",
        ],
    },
    python_requires=">=3.9",
    entry_points={
        "console_scripts": [
            "chainlink-plug=chainlink_plug.main:cli",
        ],
    },
)
