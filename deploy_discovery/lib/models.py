"""
Data models for deployed-contract discovery.

This module defines the records that flow through the discovery pipeline,
from raw network data (transactions, receipts, logs) to the final summary
returned to callers.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


# Token types inferred from deployment receipts
TOKEN_TYPE_ERC20 = "ERC20"
TOKEN_TYPE_ERC721 = "ERC721"

# Placeholder for metadata that could not be fetched
METADATA_PLACEHOLDER = "N/A"


@dataclass(frozen=True)
class Transaction:
    """A wallet transaction as listed by the transaction source."""

    hash: str
    block_number: Optional[int] = None
    block_timestamp: Optional[int] = None


@dataclass
class Log:
    """
    An event log emitted during a transaction.

    Topics are 32-byte hex strings; their meaning depends purely on
    position, since no event schema is available.
    """

    topics: List[str]
    address: Optional[str] = None
    data: str = "0x"


@dataclass
class Receipt:
    """Post-execution record of a transaction."""

    transaction_hash: str
    logs: List[Log] = field(default_factory=list)
    block_number: Optional[int] = None


@dataclass(frozen=True)
class ClassifiedDeployment:
    """A receipt recognized as a contract deployment."""

    contract_address: str  # Lower-cased, 0x-prefixed
    owner_address: str  # Lower-cased, 0x-prefixed
    token_type: str  # ERC20 or ERC721, never Unknown


@dataclass
class ContractMetadata:
    """Descriptive contract metadata. Any field may be missing."""

    name: Optional[str] = None
    symbol: Optional[str] = None
    description: Optional[str] = None

    @classmethod
    def placeholder(cls) -> "ContractMetadata":
        """Metadata used when the lookup failed."""
        return cls(
            name=METADATA_PLACEHOLDER,
            symbol=METADATA_PLACEHOLDER,
            description=METADATA_PLACEHOLDER,
        )


@dataclass
class EnrichedContract:
    """A retained deployment together with its (best-effort) metadata."""

    address: str
    token_type: str
    metadata: Optional[ContractMetadata] = None

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert to the public JSON shape.

        Missing or empty metadata fields are reported as "N/A".
        """
        metadata = self.metadata or ContractMetadata()
        return {
            "address": self.address,
            "tokenType": self.token_type,
            "metadata": {
                "name": metadata.name or METADATA_PLACEHOLDER,
                "symbol": metadata.symbol or METADATA_PLACEHOLDER,
                "description": metadata.description or METADATA_PLACEHOLDER,
            },
        }


@dataclass
class ResultSummary:
    """Final output of a discovery run."""

    total_contracts: int
    erc721_count: int
    erc20_count: int
    contracts: List[EnrichedContract]

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the public JSON shape."""
        return {
            "totalContracts": self.total_contracts,
            "erc721Count": self.erc721_count,
            "erc20Count": self.erc20_count,
            "contracts": [contract.to_dict() for contract in self.contracts],
        }
