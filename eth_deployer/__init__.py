"""Deploy compiled smart contracts and wait for the deployment to land on-chain.

.. code-block:: python

    from eth_deployer import AsyncWeb3Client, ContractFactory

    client = AsyncWeb3Client(web3, deployer_address)
    contract = await ContractFactory(abi, bytecode, client).deploy(42).send()

See :py:mod:`eth_deployer.deploy` for details.
"""

from eth_deployer.abi import ConstructorArgumentEncodingError, ConstructorMismatch
from eth_deployer.client import AsyncWeb3Client, DeploymentClient, ReceiptUnavailable, SubmissionFailure, create_local_account_client
from eth_deployer.confirmation import ConfirmationTimedOut, ContractNotDeployed
from eth_deployer.deploy import ContractFactory, DeployedContract, Deployer, DeployerConsumed, DeploymentTransaction

__all__ = [
    "ContractFactory",
    "Deployer",
    "DeployedContract",
    "DeploymentTransaction",
    "DeploymentClient",
    "AsyncWeb3Client",
    "create_local_account_client",
    "ConstructorMismatch",
    "ConstructorArgumentEncodingError",
    "SubmissionFailure",
    "ReceiptUnavailable",
    "ContractNotDeployed",
    "ConfirmationTimedOut",
    "DeployerConsumed",
]
