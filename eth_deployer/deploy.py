"""Deploy compiled contracts.

Deployment is done in two steps

- :py:class:`ContractFactory` encodes the constructor arguments and builds the
  contract creation transaction. This is pure and does not touch the network.

- :py:class:`Deployer` holds the transaction and the confirmation settings.
  Awaiting :py:meth:`Deployer.send` broadcasts the transaction, waits for its receipt
  and returns a :py:class:`DeployedContract`.

Example:

.. code-block:: python

    factory = ContractFactory(abi, bytecode, client)

    contract = await (
        factory.deploy("My token", "MYT", 1_000_000 * 10**18)
        .with_poll_interval(datetime.timedelta(seconds=1))
        .send()
    )
    print(f"Deployed at {contract.address}")
"""

import asyncio
import datetime
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional, Sequence

from eth_typing import ChecksumAddress
from eth_utils import encode_hex
from hexbytes import HexBytes
from web3 import AsyncWeb3
from web3.contract import AsyncContract
from web3.types import TxParams, TxReceipt

from eth_deployer.abi import encode_deployment_data, load_contract_artifact, normalise_bytecode
from eth_deployer.client import DeploymentClient, SubmissionFailure
from eth_deployer.confirmation import DEFAULT_POLL_INTERVAL, ConfirmationTimedOut, wait_contract_address


logger = logging.getLogger(__name__)


#: How many confirmations we ask for by default.
#:
#: Only the first one, the receipt being available, is actually waited for.
DEFAULT_CONFIRMATIONS = 1


class DeployerConsumed(RuntimeError):
    """send() was already called on this deployer."""


@dataclass(slots=True, frozen=True)
class DeploymentTransaction:
    """A contract creation transaction before signing.

    Contract creation transactions never have a recipient.
    All other fields are left for the client to fill.
    """

    #: Bytecode followed by the ABI encoded constructor arguments
    data: HexBytes

    @property
    def to(self) -> None:
        return None

    def as_tx_params(self) -> TxParams:
        """Get the transaction as web3.py transaction parameters.

        There is no ``to`` key, which is how JSON-RPC marks contract creation.
        """
        return {"data": encode_hex(self.data)}


@dataclass(slots=True, frozen=True)
class DeployedContract:
    """A contract that was successfully deployed."""

    #: Checksummed address of the new contract
    address: ChecksumAddress

    #: The ABI the contract was deployed with
    abi: Sequence[dict]

    #: The client used for the deployment
    client: DeploymentClient

    #: Hash of the deployment transaction
    tx_hash: HexBytes

    #: Receipt of the deployment transaction
    receipt: TxReceipt

    def get_web3_contract(self, web3: AsyncWeb3) -> AsyncContract:
        """Get a web3.py contract proxy to interact with the deployed contract."""
        return web3.eth.contract(address=self.address, abi=self.abi)


class Deployer:
    """Manage the deployment transaction of a contract.

    Created by :py:meth:`ContractFactory.deploy`.
    The settings can be changed with the chainable ``with_`` methods
    until :py:meth:`send` is called. A deployer can be sent only once.
    """

    def __init__(
        self,
        abi: Sequence[dict],
        client: DeploymentClient,
        tx: DeploymentTransaction,
        confirmations: int = DEFAULT_CONFIRMATIONS,
        poll_interval: datetime.timedelta = DEFAULT_POLL_INTERVAL,
        timeout: Optional[datetime.timedelta] = None,
    ):
        self._abi = abi
        self._client = client
        self._tx = tx
        self._confirmations = confirmations
        self._poll_interval = poll_interval
        self._timeout = timeout
        self._consumed = False

    def __repr__(self):
        return f"<Deployer payload:{len(self._tx.data)} bytes confirmations:{self._confirmations} poll_interval:{self._poll_interval} timeout:{self._timeout}>"

    @property
    def abi(self) -> Sequence[dict]:
        return self._abi

    @property
    def client(self) -> DeploymentClient:
        return self._client

    @property
    def tx(self) -> DeploymentTransaction:
        return self._tx

    @property
    def confirmations(self) -> int:
        return self._confirmations

    @property
    def poll_interval(self) -> datetime.timedelta:
        return self._poll_interval

    @property
    def timeout(self) -> Optional[datetime.timedelta]:
        return self._timeout

    def with_poll_interval(self, interval: datetime.timedelta) -> "Deployer":
        """Set how often we check for the deployment transaction receipt.

        Zero is allowed and polls in a tight loop.
        """
        assert isinstance(interval, datetime.timedelta), f"Expected timedelta, got {interval}"
        self._poll_interval = interval
        return self

    def with_confirmations(self, confirmations: int) -> "Deployer":
        """Set the number of confirmations to wait for.

        .. note ::

            Currently only the first confirmation is waited for:
            :py:meth:`send` returns as soon as the receipt is available.
        """
        assert isinstance(confirmations, int), f"Expected int, got {confirmations}"
        if confirmations < 0:
            raise ValueError(f"Confirmations cannot be negative: {confirmations}")
        self._confirmations = confirmations
        return self

    def with_timeout(self, timeout: Optional[datetime.timedelta]) -> "Deployer":
        """Give up waiting after this long.

        By default there is no timeout and :py:meth:`send` polls until a receipt appears.

        :param timeout:
            Upper bound for the whole submit and confirm, or ``None`` to wait forever
        """
        assert timeout is None or isinstance(timeout, datetime.timedelta), f"Expected timedelta, got {timeout}"
        self._timeout = timeout
        return self

    async def send(self) -> DeployedContract:
        """Broadcast the deployment transaction and wait for the contract address.

        :raise SubmissionFailure:
            The client did not accept the transaction

        :raise ContractNotDeployed:
            The transaction was mined but did not create a contract

        :raise ConfirmationTimedOut:
            A timeout was set and it was exceeded

        :raise DeployerConsumed:
            This deployer was already sent

        :return:
            Handle to the deployed contract
        """
        if self._consumed:
            raise DeployerConsumed("This deployer has already been sent")
        self._consumed = True

        if self._timeout is None:
            return await self._send_and_confirm()

        try:
            return await asyncio.wait_for(self._send_and_confirm(), self._timeout.total_seconds())
        except asyncio.TimeoutError as e:
            raise ConfirmationTimedOut(f"Contract deployment did not complete in {self._timeout}") from e

    def send_sync(self) -> DeployedContract:
        """Run :py:meth:`send` in a new event loop.

        For scripts that do not run asyncio themselves.
        """
        return asyncio.run(self.send())

    async def _send_and_confirm(self) -> DeployedContract:
        if self._confirmations > 1:
            logger.debug("%d confirmations asked, but only waiting for the first receipt", self._confirmations)

        logger.info("Broadcasting contract deployment, payload %d bytes", len(self._tx.data))

        try:
            tx_hash = await self._client.send_transaction(self._tx.as_tx_params())
        except Exception as e:
            raise SubmissionFailure(f"Could not broadcast contract deployment transaction: {e}") from e

        tx_hash = HexBytes(tx_hash)
        logger.info("Deployment transaction %s broadcasted, polling every %s", tx_hash.hex(), self._poll_interval)

        address, receipt = await wait_contract_address(self._client, tx_hash, self._poll_interval)

        return DeployedContract(
            address=address,
            abi=self._abi,
            client=self._client,
            tx_hash=tx_hash,
            receipt=receipt,
        )


class ContractFactory:
    """Create deployments of a contract from its ABI and bytecode.

    ABI and bytecode usually come from the Solidity compiler,
    see :py:meth:`from_artifact`.
    """

    def __init__(self, abi: Sequence[dict], bytecode: bytes | str, client: DeploymentClient):
        """Create a factory.

        :param abi:
            Contract ABI

        :param bytecode:
            Contract init code as bytes or hex string

        :param client:
            Client used to send the deployment transaction
        """
        self.abi = abi
        self.bytecode = normalise_bytecode(bytecode)
        self.client = client

    @classmethod
    def from_artifact(cls, fname: str | Path, client: DeploymentClient) -> "ContractFactory":
        """Create a factory from a solc, Forge or Hardhat artifact JSON file.

        See :py:func:`eth_deployer.abi.load_contract_artifact`.
        """
        abi, bytecode = load_contract_artifact(fname)
        return cls(abi, bytecode, client)

    def deploy(self, *constructor_args: Any) -> Deployer:
        """Build the deployment transaction.

        Nothing is sent until :py:meth:`Deployer.send` is called.

        - Default poll interval is 7 seconds

        - Default confirmation count is 1

        :param constructor_args:
            Positional constructor arguments, none if the contract has no constructor

        :raise ConstructorMismatch:
            Arguments given, but the contract has no constructor

        :raise ConstructorArgumentEncodingError:
            Arguments do not match the constructor inputs
        """
        data = encode_deployment_data(self.abi, self.bytecode, constructor_args)

        return Deployer(
            abi=self.abi,
            client=self.client,
            tx=DeploymentTransaction(data=data),
        )
