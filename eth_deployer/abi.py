"""ABI helpers for contract deployment.

- Find the constructor entry of a contract ABI

- Encode constructor arguments and append them to the contract bytecode

- Load ABI and bytecode from compiler artifacts (solc, Forge, Hardhat)

All functions here are pure and do not touch the network.
"""

import json
from pathlib import Path
from typing import Any, Optional, Sequence

import eth_abi
from eth_abi.exceptions import ABITypeError, EncodingError, ParseError
from eth_utils import add_0x_prefix, remove_0x_prefix
from eth_utils.abi import collapse_if_tuple
from hexbytes import HexBytes


class ConstructorMismatch(ValueError):
    """Constructor arguments were given, but the contract ABI does not declare a constructor."""


class ConstructorArgumentEncodingError(ValueError):
    """Constructor arguments could not be ABI encoded against the constructor inputs."""


def normalise_bytecode(bytecode: bytes | str) -> HexBytes:
    """Convert bytecode from any of the usual formats to :py:class:`HexBytes`.

    :param bytecode:
        Raw bytes or a hex string, with or without ``0x`` or ``0X`` prefix.
    """
    if isinstance(bytecode, str):
        return HexBytes(add_0x_prefix(remove_0x_prefix(bytecode)))
    return HexBytes(bytecode)


def get_constructor_abi(abi: Sequence[dict]) -> Optional[dict]:
    """Get the constructor entry of a contract ABI.

    :return:
        The constructor ABI entry or ``None`` if the contract does not declare one
    """
    for entry in abi:
        if entry.get("type") == "constructor":
            return entry
    return None


def get_abi_input_types(abi_entry: dict) -> list[str]:
    """Get the canonical input type strings of an ABI entry.

    Tuple inputs are collapsed to their ``(type1,type2)`` form
    that :py:func:`eth_abi.encode` understands.
    """
    return [collapse_if_tuple(abi_input) for abi_input in abi_entry.get("inputs", [])]


def encode_constructor_input(
    bytecode: bytes | str,
    constructor_abi: dict,
    constructor_args: Sequence[Any],
) -> HexBytes:
    """Encode constructor arguments and append them to the bytecode.

    Example:

    .. code-block:: python

        constructor_abi = {"type": "constructor", "inputs": [{"name": "x", "type": "uint256"}]}
        data = encode_constructor_input("0xaa", constructor_abi, (42,))
        assert data == HexBytes("0xaa") + eth_abi.encode(["uint256"], [42])

    :param bytecode:
        Contract init code

    :param constructor_abi:
        The constructor entry from the contract ABI

    :param constructor_args:
        Positional constructor arguments

    :raise ConstructorArgumentEncodingError:
        Wrong number of arguments or a value that does not fit its ABI type.

    :return:
        Deployment transaction payload
    """
    types = get_abi_input_types(constructor_abi)

    if len(types) != len(constructor_args):
        raise ConstructorArgumentEncodingError(f"Constructor takes {len(types)} arguments {types}, got {len(constructor_args)}: {constructor_args}")

    try:
        encoded = eth_abi.encode(types, list(constructor_args))
    except (EncodingError, ParseError, ABITypeError) as e:
        raise ConstructorArgumentEncodingError(f"Could not encode constructor arguments {constructor_args} as {types}: {e}") from e

    return HexBytes(normalise_bytecode(bytecode) + encoded)


def encode_deployment_data(
    abi: Sequence[dict],
    bytecode: bytes | str,
    constructor_args: Sequence[Any],
) -> HexBytes:
    """Build the data payload of a contract creation transaction.

    - No constructor and no arguments: the bytecode as is

    - No constructor but arguments given: :py:class:`ConstructorMismatch`

    - Constructor: bytecode followed by the ABI encoded arguments

    :raise ConstructorMismatch:
        Arguments given for a contract without a constructor

    :raise ConstructorArgumentEncodingError:
        Arguments do not match the constructor inputs
    """
    constructor_abi = get_constructor_abi(abi)

    if constructor_abi is None:
        if constructor_args:
            raise ConstructorMismatch(f"Contract ABI declares no constructor, but got constructor arguments {constructor_args}")
        return normalise_bytecode(bytecode)

    return encode_constructor_input(bytecode, constructor_abi, constructor_args)


def load_contract_artifact(fname: str | Path) -> tuple[list[dict], HexBytes]:
    """Read ABI and bytecode from a compiler artifact JSON file.

    Supported formats

    - Solc / Hardhat output: ``bytecode`` is a hex string

    - Forge output: ``bytecode`` is a dict with ``object``, ``sourceMap`` and ``linkReferences`` keys

    Etherscan copy-pasted ABI files are a bare list and do not carry any bytecode,
    so they cannot be deployed.

    :param fname:
        Path to the artifact JSON file

    :raise ValueError:
        The artifact does not contain deployable bytecode

    :return:
        Tuple (ABI, bytecode)
    """
    with open(fname, "rt", encoding="utf-8") as f:
        contract_interface = json.load(f)

    if type(contract_interface) == list:
        # Etherscan
        raise ValueError(f"{fname} is a bare ABI file without bytecode")

    abi = contract_interface["abi"]
    bytecode = contract_interface.get("bytecode")

    if type(bytecode) == dict:
        # Sol 0.8 / Forge
        bytecode = bytecode["object"]

    if not bytecode or bytecode == "0x":
        raise ValueError(f"{fname} does not contain bytecode, abstract contract or interface?")

    return abi, normalise_bytecode(bytecode)
