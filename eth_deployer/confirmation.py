"""Wait for a contract deployment transaction to be mined.

A freshly broadcast transaction is not immediately visible.
Nodes may answer "no receipt" or fail the query for several rounds
before the transaction is included in a block.
We use a simple poll loop with no deadline: callers needing an upper bound
use :py:meth:`eth_deployer.deploy.Deployer.with_timeout` or cancel the task.
"""

import asyncio
import datetime
import logging
from typing import Awaitable, Callable

import aiohttp
from eth_typing import ChecksumAddress
from hexbytes import HexBytes
from web3 import Web3
from web3.exceptions import PersistentConnectionError, ProviderConnectionError, TransactionNotFound, Web3RPCError
from web3.types import TxReceipt

from eth_deployer.client import ChainStateReader, ReceiptUnavailable


logger = logging.getLogger(__name__)


#: Poll for the deployment receipt once every 7 seconds
#:
#: TODO: Replace polling with a new block subscription where the provider supports it
DEFAULT_POLL_INTERVAL = datetime.timedelta(seconds=7)

#: Receipt query errors we expect from flaky nodes and logged quietly.
#:
#: Other errors are retried as well, but logged as warnings.
TRANSIENT_RECEIPT_ERRORS = (
    ReceiptUnavailable,
    TransactionNotFound,
    Web3RPCError,
    ConnectionError,
    asyncio.TimeoutError,
    aiohttp.ClientError,
)

#: Receipt query errors meaning the connection to the node is gone for good.
#:
#: These are raised to the caller, everything else is retried.
FATAL_RECEIPT_ERRORS = (
    ProviderConnectionError,
    PersistentConnectionError,
)


class ContractNotDeployed(Exception):
    """Got a receipt for the deployment transaction, but it did not create a contract."""

    def __init__(self, tx_hash: HexBytes, receipt: TxReceipt, msg: str):
        super().__init__(msg)
        self.tx_hash = tx_hash
        self.receipt = receipt


class ConfirmationTimedOut(Exception):
    """We exceeded the deployment timeout set by the caller."""


async def wait_contract_address(
    client: ChainStateReader,
    tx_hash: HexBytes,
    poll_interval: datetime.timedelta = DEFAULT_POLL_INTERVAL,
    sleep: Callable[[float], Awaitable] = asyncio.sleep,
) -> tuple[ChecksumAddress, TxReceipt]:
    """Poll until the deployment transaction has a receipt.

    - A missing receipt or a failed query: sleep ``poll_interval`` and ask again

    - Lost connection to the node, see :py:data:`FATAL_RECEIPT_ERRORS`: raised as is

    - A receipt with ``contractAddress``: done

    - A receipt without ``contractAddress``: :py:class:`ContractNotDeployed`

    Only one query is in flight at a time. Querying the same hash
    repeatedly has no side effects, so there is no limit on attempts.

    Example:

    .. code-block:: python

        tx_hash = await client.send_transaction(tx)
        address, receipt = await wait_contract_address(client, tx_hash, datetime.timedelta(seconds=1))

    :param client:
        Anything that can read receipts

    :param tx_hash:
        Hash of the deployment transaction

    :param poll_interval:
        How long to sleep between receipt queries

    :param sleep:
        Async sleep function, takes seconds

    :raise ContractNotDeployed:
        The transaction was mined but no contract was created, e.g. the constructor reverted

    :raise ProviderConnectionError:
        The client lost its connection to the node, see :py:data:`FATAL_RECEIPT_ERRORS`

    :return:
        Tuple (checksummed contract address, receipt)
    """

    assert isinstance(poll_interval, datetime.timedelta), f"Expected timedelta, got {poll_interval}"

    tx_hash = HexBytes(tx_hash)
    attempts = 0

    while True:
        attempts += 1

        try:
            receipt = await client.get_transaction_receipt(tx_hash)
        except FATAL_RECEIPT_ERRORS:
            raise
        except TRANSIENT_RECEIPT_ERRORS as e:
            logger.debug("Receipt not available for %s on attempt %d: %s", tx_hash.hex(), attempts, e)
            receipt = None
        except Exception as e:
            logger.warning("Receipt query for %s failed on attempt %d, retrying: %s", tx_hash.hex(), attempts, e, exc_info=True)
            receipt = None

        if receipt is not None:
            contract_address = receipt.get("contractAddress")
            if not contract_address:
                raise ContractNotDeployed(
                    tx_hash,
                    receipt,
                    f"Transaction {tx_hash.hex()} was mined in block {receipt.get('blockNumber')} but did not create a contract, status {receipt.get('status')}",
                )

            logger.info("Contract deployed at %s, tx %s, after %d receipt queries", contract_address, tx_hash.hex(), attempts)
            return Web3.to_checksum_address(contract_address), receipt

        logger.debug("No receipt yet for %s, attempt %d, sleeping %s", tx_hash.hex(), attempts, poll_interval)
        await sleep(poll_interval.total_seconds())
