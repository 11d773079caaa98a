"""
Deployment classifier for factory deployment receipts.

The deployer factory emits a fixed sequence of initialization events per
token type, so the number of logs in a receipt is the only available
discriminant. Each known sequence is described by a DeploymentShape; a
receipt either decodes against one of them or is unrecognized.

The heuristic is intentionally kept bit-for-bit compatible with existing
results: a factory upgrade that changes a log count will drop or reclassify
deployments, and receipts that happen to have 8 or 13 logs are classified
regardless of what they actually deployed.
"""

import re
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

from .models import (
    TOKEN_TYPE_ERC20,
    TOKEN_TYPE_ERC721,
    ClassifiedDeployment,
    Receipt,
)

# (log index, topic index) of the deployed contract's address
CONTRACT_ADDRESS_SLOT = (0, 2)

_LEADING_ZEROS = re.compile(r"^0x0*")


@dataclass(frozen=True)
class DeploymentShape:
    """
    Declared layout of a deployment receipt.

    Attributes:
        token_type: Token type assigned to matching receipts
        log_count: Exact number of logs a matching receipt has
        owner_slots: (log index, topic index) candidates for the owner,
            tried in order
    """

    token_type: str
    log_count: int
    owner_slots: Tuple[Tuple[int, int], ...]


ERC20_SHAPE = DeploymentShape(
    token_type=TOKEN_TYPE_ERC20,
    log_count=8,
    owner_slots=((1, 2), (0, 1)),
)

ERC721_SHAPE = DeploymentShape(
    token_type=TOKEN_TYPE_ERC721,
    log_count=13,
    owner_slots=((3, 2),),
)

KNOWN_SHAPES = (ERC20_SHAPE, ERC721_SHAPE)


def topic_to_address(topic: str) -> str:
    """
    Extract an address from a 32-byte topic.

    Addresses are right-aligned in the topic, so the last 40 hex characters
    are kept.

    Example:
        "0x000000000000000000000000394311A6aaa0d8e3411d8b62de4578d41322d1bd"
        -> "0x394311a6aaa0d8e3411d8b62de4578d41322d1bd"
    """
    return "0x" + topic[-40:].lower()


def normalize_address(address: str) -> str:
    """
    Normalize an address for exact comparison.

    Lower-cases, trims whitespace and collapses "0x" plus any leading zeros
    into a bare "0x" prefix.
    """
    return _LEADING_ZEROS.sub("0x", address.lower().strip())


def get_topic(receipt: Receipt, log_index: int, topic_index: int) -> Optional[str]:
    """Return the topic at the given slot, or None if absent or empty."""
    if log_index >= len(receipt.logs):
        return None
    topics = receipt.logs[log_index].topics
    if topic_index >= len(topics):
        return None
    return topics[topic_index] or None


def extract_contract_address(receipt: Receipt) -> Optional[str]:
    """Contract address from the first log's third topic, if present."""
    topic = get_topic(receipt, *CONTRACT_ADDRESS_SLOT)
    return topic_to_address(topic) if topic else None


def extract_owner_address(receipt: Receipt, owner_slots: Sequence[Tuple[int, int]]) -> Optional[str]:
    """Owner address from the first populated candidate slot."""
    for log_index, topic_index in owner_slots:
        topic = get_topic(receipt, log_index, topic_index)
        if topic:
            return topic_to_address(topic)
    return None


def decode_deployment(receipt: Receipt, shape: DeploymentShape) -> Optional[ClassifiedDeployment]:
    """
    Decode a receipt against a declared deployment shape.

    Args:
        receipt: Transaction receipt
        shape: Shape the receipt must match

    Returns:
        ClassifiedDeployment, or None if the receipt does not match the
        shape or an address cannot be extracted
    """
    if len(receipt.logs) != shape.log_count:
        return None

    contract_address = extract_contract_address(receipt)
    if not contract_address:
        return None

    owner_address = extract_owner_address(receipt, shape.owner_slots)
    if not owner_address:
        return None

    return ClassifiedDeployment(
        contract_address=contract_address,
        owner_address=owner_address,
        token_type=shape.token_type,
    )


def decode_as_erc20_deployment(receipt: Receipt) -> Optional[ClassifiedDeployment]:
    """Decode an 8-log ERC20 factory deployment."""
    return decode_deployment(receipt, ERC20_SHAPE)


def decode_as_erc721_deployment(receipt: Receipt) -> Optional[ClassifiedDeployment]:
    """Decode a 13-log ERC721 factory deployment."""
    return decode_deployment(receipt, ERC721_SHAPE)


def classify_receipt(receipt: Optional[Receipt]) -> Optional[ClassifiedDeployment]:
    """
    Classify a receipt as an ERC20 or ERC721 deployment.

    Args:
        receipt: Receipt, or None if it could not be resolved

    Returns:
        ClassifiedDeployment, or None for null or unrecognized receipts
    """
    if receipt is None:
        return None

    for shape in KNOWN_SHAPES:
        deployment = decode_deployment(receipt, shape)
        if deployment is not None:
            return deployment

    return None
