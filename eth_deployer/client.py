"""Signing and JSON-RPC client capabilities needed by a deployment.

A deployment needs two things from the outside world

- Something that can sign and broadcast a transaction: :py:class:`TransactionSender`

- Something that can read chain state back: :py:class:`ChainStateReader`

:py:class:`eth_deployer.deploy.Deployer` works with any object implementing both.
:py:class:`AsyncWeb3Client` is the implementation backed by web3.py.
"""

import logging
from typing import Optional, Protocol, runtime_checkable

from eth_account.signers.local import LocalAccount
from eth_typing import HexAddress
from hexbytes import HexBytes
from web3 import AsyncWeb3, Web3
from web3.exceptions import TransactionNotFound
from web3.middleware import SignAndSendRawMiddlewareBuilder
from web3.types import TxParams, TxReceipt


logger = logging.getLogger(__name__)


class SubmissionFailure(Exception):
    """The client rejected the deployment transaction or could not relay it."""


class ReceiptUnavailable(Exception):
    """The receipt cannot be read right now, but asking again later may work.

    Raise this from a custom :py:class:`ChainStateReader` for recoverable
    query errors. The confirmation loop never lets it out.
    """


@runtime_checkable
class TransactionSender(Protocol):
    """Can sign and submit transactions."""

    async def send_transaction(self, tx: TxParams) -> HexBytes:
        """Sign and broadcast a transaction.

        :return:
            Transaction hash
        """


@runtime_checkable
class ChainStateReader(Protocol):
    """Can query chain state."""

    async def get_transaction_receipt(self, tx_hash: HexBytes) -> Optional[TxReceipt]:
        """Get the receipt of a transaction.

        :return:
            The receipt or ``None`` if the transaction is not mined yet
        """


@runtime_checkable
class DeploymentClient(TransactionSender, ChainStateReader, Protocol):
    """Everything a deployment needs from a client."""


class AsyncWeb3Client:
    """Deployment client on the top of :py:class:`web3.AsyncWeb3`.

    Transactions are sent with ``eth_sendTransaction`` from ``sender``.
    This works directly with node managed accounts (Anvil, Ethereum Tester).
    For a private key held in the process, use :py:func:`create_local_account_client`.

    Example:

    .. code-block:: python

        web3 = AsyncWeb3(AsyncHTTPProvider(json_rpc_url))
        client = AsyncWeb3Client(web3, (await web3.eth.accounts)[0])
    """

    def __init__(self, web3: AsyncWeb3, sender: HexAddress | str):
        assert isinstance(web3, AsyncWeb3), f"Expected AsyncWeb3, got {type(web3)}"
        self.web3 = web3
        self.sender = Web3.to_checksum_address(sender)

    def __repr__(self):
        return f"<AsyncWeb3Client sender:{self.sender} provider:{self.web3.provider}>"

    async def send_transaction(self, tx: TxParams) -> HexBytes:
        tx = dict(tx)
        tx.setdefault("from", self.sender)
        tx_hash = await self.web3.eth.send_transaction(tx)
        logger.debug("Node accepted transaction %s from %s", tx_hash.hex(), self.sender)
        return HexBytes(tx_hash)

    async def get_transaction_receipt(self, tx_hash: HexBytes) -> Optional[TxReceipt]:
        try:
            return await self.web3.eth.get_transaction_receipt(tx_hash)
        except TransactionNotFound:
            # Not mined yet, or the node has not seen the broadcast yet
            return None


def create_local_account_client(web3: AsyncWeb3, account: LocalAccount) -> AsyncWeb3Client:
    """Create a client that signs transactions locally with a private key.

    Installs web3.py's sign-and-send-raw middleware on ``web3``,
    so ``eth_sendTransaction`` calls from the account address are
    signed in-process and broadcast with ``eth_sendRawTransaction``.
    The middleware fills in nonce, gas and fee fields with the node defaults.

    :param web3:
        Web3 connection. Its middleware onion is modified.

    :param account:
        The deployer account
    """
    assert isinstance(account, LocalAccount), f"Expected LocalAccount, got {type(account)}"
    web3.middleware_onion.inject(SignAndSendRawMiddlewareBuilder.build(account), layer=0)
    return AsyncWeb3Client(web3, account.address)
