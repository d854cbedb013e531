"""Deploy on an in-process Ethereum Tester chain through AsyncWeb3."""

import datetime

import eth_abi
import pytest
from eth_account import Account
from hexbytes import HexBytes
from web3 import AsyncWeb3
from web3.providers.eth_tester import AsyncEthereumTesterProvider

from eth_deployer.client import AsyncWeb3Client, DeploymentClient, create_local_account_client
from eth_deployer.deploy import ContractFactory


#: Hand assembled init code: copy one byte of runtime code (STOP) to memory and return it.
#:
#: PUSH1 1, PUSH1 12, PUSH1 0, CODECOPY, PUSH1 1, PUSH1 0, RETURN, then the runtime code 0x00.
#: Constructor arguments appended after the init code are never read.
INIT_CODE = "0x6001600c60003960016000f300"


@pytest.fixture
def web3() -> AsyncWeb3:
    """Set up a local unit testing blockchain."""
    # https://web3py.readthedocs.io/en/stable/examples.html#contract-unit-tests-in-python
    return AsyncWeb3(AsyncEthereumTesterProvider())


@pytest.fixture
def abi() -> list[dict]:
    return [
        {
            "type": "constructor",
            "stateMutability": "nonpayable",
            "inputs": [{"name": "initialValue", "type": "uint256", "internalType": "uint256"}],
        }
    ]


@pytest.mark.asyncio
async def test_deploy_on_tester_chain(web3: AsyncWeb3, abi):
    """Deploy a contract and read its code and creation data back from the chain."""
    deployer_address = (await web3.eth.accounts)[0]
    client = AsyncWeb3Client(web3, deployer_address)
    assert isinstance(client, DeploymentClient)

    deployer = ContractFactory(abi, INIT_CODE, client).deploy(42).with_poll_interval(datetime.timedelta(milliseconds=10))
    contract = await deployer.send()

    assert await web3.eth.get_code(contract.address) == HexBytes("0x00")
    assert contract.receipt["status"] == 1
    assert contract.client is client

    tx = await web3.eth.get_transaction(contract.tx_hash)
    assert not tx.get("to")
    assert HexBytes(tx["input"]) == HexBytes(INIT_CODE) + eth_abi.encode(["uint256"], [42])

    # Hand off to web3.py for further interaction
    web3_contract = contract.get_web3_contract(web3)
    assert web3_contract.address == contract.address


@pytest.mark.asyncio
async def test_two_deployments_get_different_addresses(web3: AsyncWeb3, abi):
    deployer_address = (await web3.eth.accounts)[0]
    factory = ContractFactory(abi, INIT_CODE, AsyncWeb3Client(web3, deployer_address))

    first = await factory.deploy(1).with_poll_interval(datetime.timedelta(milliseconds=10)).send()
    second = await factory.deploy(1).with_poll_interval(datetime.timedelta(milliseconds=10)).send()

    assert first.address != second.address
    assert first.tx_hash != second.tx_hash


@pytest.mark.asyncio
async def test_unknown_receipt_is_none(web3: AsyncWeb3):
    """Ethereum Tester raises TransactionNotFound for unknown hashes, we turn it to None."""
    deployer_address = (await web3.eth.accounts)[0]
    client = AsyncWeb3Client(web3, deployer_address)
    assert await client.get_transaction_receipt(HexBytes("0x" + "11" * 32)) is None


def test_sender_is_checksummed(web3: AsyncWeb3):
    account = Account.create()
    client = AsyncWeb3Client(web3, account.address.lower())
    assert client.sender == account.address


def test_create_local_account_client(web3: AsyncWeb3):
    account = Account.create()
    client = create_local_account_client(web3, account)
    assert client.sender == account.address
    assert client.web3 is web3


def test_sync_web3_rejected():
    with pytest.raises(AssertionError):
        AsyncWeb3Client(object(), "0x0000000000000000000000000000000000000001")
