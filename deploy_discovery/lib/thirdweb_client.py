"""
thirdweb API client for transaction listing, receipts and contract metadata.

This module provides a single client for every network interaction the
discovery pipeline needs: the Insight REST API for wallet transactions, the
chain RPC endpoint for receipts and contract calls, and the IPFS gateway for
contract metadata documents. Every call is attempted exactly once.
"""

import logging
from typing import Any, Callable, Dict, List, Optional

import requests
from eth_abi import decode as abi_decode
from eth_abi.exceptions import DecodingError

from .models import ContractMetadata, Log, Receipt, Transaction


logger = logging.getLogger(__name__)

INSIGHT_BASE_URL = "https://insight.thirdweb.com/v1"
RPC_URL_TEMPLATE = "https://{chain_id}.rpc.thirdweb.com/{client_id}"
IPFS_GATEWAY_TEMPLATE = "https://{client_id}.ipfs.thirdwebcdn.com/ipfs/{path}"

# 4-byte selectors of the read-only calls used for metadata
CONTRACT_URI_SELECTOR = "0xe8a3d485"  # contractURI()
NAME_SELECTOR = "0x06fdde03"  # name()
SYMBOL_SELECTOR = "0x95d89b41"  # symbol()

DEFAULT_TIMEOUT = 30.0  # seconds


class ThirdwebAPIError(Exception):
    """Exception raised for thirdweb API errors."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code

    @property
    def code(self) -> Optional[int]:
        """Numeric error code, if the upstream service provided one."""
        return self.status_code


class ThirdwebRateLimitError(ThirdwebAPIError):
    """Exception raised when the API rejects a request with HTTP 429."""

    pass


class MetadataUnavailableError(ThirdwebAPIError):
    """Exception raised when a contract exposes no readable metadata."""

    pass


class ThirdwebClient:
    """
    Centralized thirdweb API client.

    All API interactions go through this class, which handles:
    - Credential headers and the chain-specific RPC endpoint
    - Mapping HTTP and JSON-RPC failures to ThirdwebAPIError
    - Decoding receipts, transaction pages and metadata

    A single instance is shared read-only by all pipeline invocations.
    """

    def __init__(
        self,
        client_id: str,
        secret_key: Optional[str] = None,
        chain_id: int = 31,
        timeout: float = DEFAULT_TIMEOUT,
        session: Optional[requests.Session] = None,
    ):
        """
        Initialize the thirdweb client.

        Args:
            client_id: thirdweb client ID
            secret_key: thirdweb secret key (server-side credential)
            chain_id: Numeric chain identifier
            timeout: Per-request timeout in seconds
            session: Optional pre-configured requests session
        """
        self.client_id = client_id
        self.secret_key = secret_key
        self.chain_id = chain_id
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers["x-client-id"] = client_id
        if secret_key:
            self.session.headers["x-secret-key"] = secret_key

    def _sanitize_error_message(self, message: str) -> str:
        """Remove the secret key from error messages to prevent credential leakage."""
        if not self.secret_key:
            return message
        return message.replace(self.secret_key, "[REDACTED]")

    def _get_rpc_url(self) -> str:
        """Get the RPC URL for the configured chain."""
        return RPC_URL_TEMPLATE.format(chain_id=self.chain_id, client_id=self.client_id)

    def _resolve_uri(self, uri: str) -> str:
        """
        Turn a metadata URI into a fetchable HTTP URL.

        Raises:
            ThirdwebAPIError: For unsupported URI schemes
        """
        if uri.startswith("ipfs://"):
            return IPFS_GATEWAY_TEMPLATE.format(client_id=self.client_id, path=uri[len("ipfs://") :])
        if uri.startswith(("http://", "https://")):
            return uri
        raise ThirdwebAPIError(f"Unsupported metadata URI: {uri}")

    def _execute(
        self,
        request_func: Callable[[], requests.Response],
    ) -> requests.Response:
        """
        Execute a request function once, mapping failures to API errors.

        Args:
            request_func: A callable that returns a requests.Response

        Returns:
            The successful response

        Raises:
            ThirdwebAPIError: For transport or HTTP errors
            ThirdwebRateLimitError: When the request was rate limited
        """
        try:
            response = request_func()
        except requests.RequestException as e:
            sanitized_msg = self._sanitize_error_message(str(e))
            raise ThirdwebAPIError(f"Request failed: {sanitized_msg}") from e

        if response.status_code == 429:
            raise ThirdwebRateLimitError("Rate limit exceeded", status_code=429)

        if response.status_code in (401, 403):
            raise ThirdwebAPIError("Invalid credentials", status_code=response.status_code)

        if response.status_code >= 500:
            raise ThirdwebAPIError(
                f"Server error: {response.status_code}",
                status_code=response.status_code,
            )

        if response.status_code >= 400:
            raise ThirdwebAPIError(
                f"Client error: {response.status_code}",
                status_code=response.status_code,
            )

        return response

    def _json(self, response: requests.Response) -> Any:
        """Decode a JSON response body."""
        try:
            return response.json()
        except ValueError as e:
            raise ThirdwebAPIError(f"Invalid JSON response from {response.url}") from e

    def _request(
        self,
        method: str,
        params: Any,
        request_id: int = 1,
    ) -> Any:
        """
        Make a JSON-RPC request against the chain RPC endpoint.

        Args:
            method: JSON-RPC method name
            params: Method parameters
            request_id: JSON-RPC request ID

        Returns:
            The 'result' field from the JSON-RPC response

        Raises:
            ThirdwebAPIError: For API errors
        """
        url = self._get_rpc_url()
        payload = {
            "jsonrpc": "2.0",
            "method": method,
            "params": params,
            "id": request_id,
        }

        response = self._execute(lambda: self.session.post(url, json=payload, timeout=self.timeout))
        data = self._json(response)
        if not isinstance(data, dict):
            raise ThirdwebAPIError(f"Malformed JSON-RPC response for {method}")

        if "error" in data:
            error = data["error"]
            if not isinstance(error, dict):
                raise ThirdwebAPIError(f"API error: {error}")
            raise ThirdwebAPIError(
                f"API error: {error.get('message', str(error))}",
                status_code=error.get("code"),
            )

        return data.get("result")

    def _get(self, url: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """Make a GET request and return the decoded JSON body."""
        response = self._execute(lambda: self.session.get(url, params=params, timeout=self.timeout))
        return self._json(response)

    def get_wallet_transactions(
        self,
        wallet: str,
        function_selector: str,
        page: int,
        limit: int,
        since: Optional[int] = None,
    ) -> List[Transaction]:
        """
        Get one page of a wallet's transactions calling a given function.

        Args:
            wallet: Wallet address whose transactions are listed
            function_selector: 4-byte selector the transactions must call
            page: Page number
            limit: Page size
            since: Optional unix timestamp; only blocks at or after it

        Returns:
            List of Transaction objects (empty past the last page)
        """
        params: Dict[str, Any] = {
            "chain_id": self.chain_id,
            "filter_function_selector": function_selector,
            "limit": limit,
            "page": page,
        }
        if since is not None:
            params["filter_block_timestamp_gte"] = since

        result = self._get(f"{INSIGHT_BASE_URL}/wallets/{wallet}/transactions", params)
        items = result.get("data") or []

        return [
            Transaction(
                hash=item.get("hash", ""),
                block_number=item.get("block_number"),
                block_timestamp=item.get("block_timestamp"),
            )
            for item in items
        ]

    def get_transaction_receipt(self, tx_hash: str) -> Receipt:
        """
        Get the receipt of a mined transaction.

        Args:
            tx_hash: Transaction hash

        Returns:
            Receipt with its logs in emission order

        Raises:
            ThirdwebAPIError: If the request fails or the receipt does not exist
        """
        result = self._request("eth_getTransactionReceipt", [tx_hash])
        if not result:
            raise ThirdwebAPIError(f"Transaction receipt not found: {tx_hash}")
        if not isinstance(result, dict):
            raise ThirdwebAPIError(f"Malformed receipt for {tx_hash}")

        block_number = result.get("blockNumber")
        try:
            block = int(block_number, 16) if block_number else None
        except (TypeError, ValueError) as e:
            raise ThirdwebAPIError(f"Malformed block number in receipt for {tx_hash}: {block_number}") from e

        return Receipt(
            transaction_hash=result.get("transactionHash", tx_hash),
            logs=[
                Log(
                    topics=list(log.get("topics") or []),
                    address=log.get("address"),
                    data=log.get("data", "0x"),
                )
                for log in result.get("logs") or []
            ],
            block_number=block,
        )

    def call(self, contract_address: str, data: str) -> str:
        """
        Execute a read-only contract call at the latest block.

        Args:
            contract_address: Contract to call
            data: ABI-encoded call data (selector plus arguments)

        Returns:
            Raw hex return data
        """
        return self._request("eth_call", [{"to": contract_address, "data": data}, "latest"])

    def _call_string(self, contract_address: str, selector: str) -> Optional[str]:
        """Call a no-argument function returning a string; None if unavailable."""
        try:
            raw = self.call(contract_address, selector)
            (value,) = abi_decode(["string"], bytes.fromhex(raw[2:] if raw.startswith("0x") else raw))
        except (ThirdwebAPIError, DecodingError, UnicodeDecodeError, ValueError, TypeError, AttributeError) as e:
            logger.debug("Call %s on %s unavailable: %s", selector, contract_address, e)
            return None
        return value

    def _fetch_contract_uri_document(self, contract_address: str) -> Dict[str, Any]:
        """Download the contractURI() JSON document; empty dict if unavailable."""
        uri = self._call_string(contract_address, CONTRACT_URI_SELECTOR)
        if not uri:
            return {}
        try:
            document = self._get(self._resolve_uri(uri))
        except ThirdwebAPIError as e:
            logger.debug("Metadata document for %s unavailable: %s", contract_address, e)
            return {}
        return document if isinstance(document, dict) else {}

    def get_contract_metadata(self, contract_address: str) -> ContractMetadata:
        """
        Get descriptive metadata (name, symbol, description) for a contract.

        The contractURI() document supplies the description; on-chain
        name() and symbol() take precedence over the document's values.

        Args:
            contract_address: Contract address

        Returns:
            ContractMetadata object

        Raises:
            MetadataUnavailableError: If the contract exposes no metadata at all
        """
        document = self._fetch_contract_uri_document(contract_address)
        name = self._call_string(contract_address, NAME_SELECTOR)
        symbol = self._call_string(contract_address, SYMBOL_SELECTOR)

        if not document and name is None and symbol is None:
            raise MetadataUnavailableError(f"No metadata exposed by {contract_address}")

        return ContractMetadata(
            name=name if name is not None else document.get("name"),
            symbol=symbol if symbol is not None else document.get("symbol"),
            description=document.get("description"),
        )
