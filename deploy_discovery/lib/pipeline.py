"""
Discovery pipeline for contracts deployed by the factory wallet.

Stages run in a straight line, each consuming the previous stage's
complete output:

    fetch transactions -> resolve receipts -> classify -> filter by owner
    -> enrich with metadata -> summarize

Only the transaction fetch is fail-fast. Receipt and metadata failures are
isolated per item and turned into null receipts or placeholder metadata.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Iterator, List, Optional, Protocol, Sequence

from .classifier import classify_receipt, normalize_address
from .config import Settings
from .formatters import format_summary
from .models import (
    ClassifiedDeployment,
    ContractMetadata,
    EnrichedContract,
    Receipt,
    ResultSummary,
    Transaction,
)
from .thirdweb_client import ThirdwebAPIError, ThirdwebClient


logger = logging.getLogger(__name__)

# Selector of the factory's deployment function
DEPLOY_FUNCTION_SELECTOR = "0xd057c8b1"
PAGE_SIZE = 100
FIRST_PAGE = 1
DEFAULT_RECEIPT_WORKERS = 16


class TransactionFetchError(ThirdwebAPIError):
    """
    Listing the deployer's transactions failed.

    Carries no status code: the failure belongs to this service, not to the
    caller's request, whatever code the upstream API answered with.
    """

    def __init__(self, message: str):
        super().__init__(message)


class TransactionSource(Protocol):
    def get_wallet_transactions(
        self,
        wallet: str,
        function_selector: str,
        page: int,
        limit: int,
        since: Optional[int] = None,
    ) -> List[Transaction]: ...


class ReceiptSource(Protocol):
    def get_transaction_receipt(self, tx_hash: str) -> Receipt: ...


class MetadataSource(Protocol):
    def get_contract_metadata(self, contract_address: str) -> ContractMetadata: ...


def iter_transaction_pages(
    source: TransactionSource,
    wallet: str,
    since: Optional[int] = None,
) -> Iterator[List[Transaction]]:
    """
    Lazily yield pages of a wallet's deployment transactions.

    Stops after an empty page or a page shorter than PAGE_SIZE. Each call
    starts again from the first page.

    Raises:
        ThirdwebAPIError: Propagated from the source; aborts the iteration
    """
    page = FIRST_PAGE
    while True:
        transactions = source.get_wallet_transactions(
            wallet,
            DEPLOY_FUNCTION_SELECTOR,
            page=page,
            limit=PAGE_SIZE,
            since=since,
        )
        if not transactions:
            return

        yield transactions

        if len(transactions) < PAGE_SIZE:
            return
        page += 1


def fetch_all_transactions(
    source: TransactionSource,
    wallet: str,
    since: Optional[int] = None,
) -> List[Transaction]:
    """Fetch every deployment transaction of a wallet, in source order."""
    all_transactions: List[Transaction] = []
    for transactions in iter_transaction_pages(source, wallet, since=since):
        all_transactions.extend(transactions)
    return all_transactions


def resolve_receipts(
    source: ReceiptSource,
    tx_hashes: Sequence[str],
    max_workers: int = DEFAULT_RECEIPT_WORKERS,
) -> List[Optional[Receipt]]:
    """
    Resolve transaction hashes to receipts concurrently.

    Args:
        source: Receipt source
        tx_hashes: Transaction hashes to resolve
        max_workers: Maximum number of concurrent resolutions

    Returns:
        Receipts in the same order as tx_hashes, with None wherever
        resolution failed
    """
    if not tx_hashes:
        return []

    def resolve(tx_hash: str) -> Optional[Receipt]:
        try:
            return source.get_transaction_receipt(tx_hash)
        except Exception as e:
            logger.warning("Failed to resolve receipt for %s: %s", tx_hash, e)
            return None

    with ThreadPoolExecutor(max_workers=min(max_workers, len(tx_hashes))) as executor:
        return list(executor.map(resolve, tx_hashes))


def classify_receipts(receipts: Sequence[Optional[Receipt]]) -> List[ClassifiedDeployment]:
    """Classify receipts, dropping null and unrecognized ones."""
    deployments: List[ClassifiedDeployment] = []
    for receipt in receipts:
        deployment = classify_receipt(receipt)
        if deployment is not None:
            deployments.append(deployment)
    return deployments


def filter_owner_columns(
    owners: Sequence[str],
    addresses: Sequence[str],
    token_types: Sequence[str],
    target_owner: str,
) -> List[ClassifiedDeployment]:
    """
    Keep deployments owned by target_owner, given as parallel columns.

    Columns of unequal length are truncated to the shortest one. Rows with
    an empty owner, address or token type are skipped.
    """
    normalized_target = normalize_address(target_owner)
    retained: List[ClassifiedDeployment] = []

    for owner, address, token_type in zip(owners, addresses, token_types):
        if not (owner and address and token_type):
            continue
        if normalize_address(owner) == normalized_target:
            retained.append(
                ClassifiedDeployment(
                    contract_address=address,
                    owner_address=owner,
                    token_type=token_type,
                )
            )

    return retained


def filter_by_owner(
    deployments: Sequence[ClassifiedDeployment],
    target_owner: str,
) -> List[ClassifiedDeployment]:
    """
    Keep deployments whose owner matches target_owner after normalization.

    Args:
        deployments: Classified deployments
        target_owner: Owner wallet address, in any case and padding

    Returns:
        Matching deployments, in input order
    """
    return filter_owner_columns(
        [d.owner_address for d in deployments],
        [d.contract_address for d in deployments],
        [d.token_type for d in deployments],
        target_owner,
    )


def enrich_contracts(
    source: MetadataSource,
    deployments: Sequence[ClassifiedDeployment],
) -> List[EnrichedContract]:
    """
    Attach metadata to each deployment, one contract at a time.

    A failed lookup never drops the contract: its metadata is set to the
    "N/A" placeholder instead.
    """
    enriched: List[EnrichedContract] = []

    for deployment in deployments:
        address = deployment.contract_address
        try:
            metadata = source.get_contract_metadata(address)
            logger.info("Fetched metadata for %s (%s)", address, deployment.token_type)
        except Exception as e:
            logger.warning("Failed to fetch metadata for %s: %s", address, e)
            metadata = ContractMetadata.placeholder()

        enriched.append(
            EnrichedContract(
                address=address,
                token_type=deployment.token_type,
                metadata=metadata,
            )
        )

    return enriched


class DeploymentDiscovery:
    """
    Finds the factory deployments owned by a wallet.

    The three network collaborators are injected so tests can substitute
    in-memory fakes; in production all three are one ThirdwebClient.
    """

    def __init__(
        self,
        transactions: TransactionSource,
        receipts: ReceiptSource,
        metadata: MetadataSource,
        deployer_wallet: str,
        receipt_workers: int = DEFAULT_RECEIPT_WORKERS,
    ):
        self.transactions = transactions
        self.receipts = receipts
        self.metadata = metadata
        self.deployer_wallet = deployer_wallet
        self.receipt_workers = receipt_workers

    def query_deployed_contracts(
        self,
        owner_wallet: str,
        since: Optional[int] = None,
    ) -> ResultSummary:
        """
        Run the full discovery pipeline for one owner wallet.

        Args:
            owner_wallet: Wallet that must own the returned contracts
            since: Optional unix timestamp lower bound for transactions

        Returns:
            ResultSummary of the owner's contracts

        Raises:
            TransactionFetchError: If listing the deployer's transactions fails
        """
        try:
            transactions = fetch_all_transactions(self.transactions, self.deployer_wallet, since=since)
        except ThirdwebAPIError as e:
            raise TransactionFetchError(f"Failed to list deployment transactions: {e}") from e
        logger.info("Found %d deployment transactions", len(transactions))

        receipts = resolve_receipts(
            self.receipts,
            [tx.hash for tx in transactions],
            max_workers=self.receipt_workers,
        )
        failed = sum(1 for receipt in receipts if receipt is None)
        logger.info("Resolved %d receipts (%d failed)", len(receipts) - failed, failed)

        deployments = classify_receipts(receipts)
        logger.info("Classified %d deployments", len(deployments))

        owned = filter_by_owner(deployments, owner_wallet)
        logger.info("Retained %d deployments owned by %s", len(owned), owner_wallet)

        return format_summary(enrich_contracts(self.metadata, owned))


def create_discovery(settings: Settings) -> DeploymentDiscovery:
    """
    Build a DeploymentDiscovery backed by a single thirdweb client.

    Args:
        settings: Loaded settings

    Returns:
        Configured DeploymentDiscovery
    """
    client = ThirdwebClient(
        settings.thirdweb_client_id,
        secret_key=settings.thirdweb_secret_key,
        chain_id=settings.chain_id,
        timeout=settings.request_timeout,
    )
    return DeploymentDiscovery(
        transactions=client,
        receipts=client,
        metadata=client,
        deployer_wallet=settings.deployer_wallet,
        receipt_workers=settings.receipt_workers,
    )
