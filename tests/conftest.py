"""Shared fixtures for eth_deployer tests."""

import pytest

from tests.fake_client import SleepRecorder


@pytest.fixture()
def sleep_recorder() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture()
def uint_constructor_abi() -> list[dict]:
    """ABI of a contract taking a single uint256 in its constructor."""
    return [
        {
            "type": "constructor",
            "stateMutability": "nonpayable",
            "inputs": [{"name": "initialValue", "type": "uint256", "internalType": "uint256"}],
        }
    ]


@pytest.fixture()
def no_constructor_abi() -> list[dict]:
    """ABI of a contract with a single view function and no constructor."""
    return [
        {
            "type": "function",
            "name": "value",
            "stateMutability": "view",
            "inputs": [],
            "outputs": [{"name": "", "type": "uint256", "internalType": "uint256"}],
        }
    ]
