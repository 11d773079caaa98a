"""
Output formatters for deployed-contract summaries.

This module aggregates enriched contracts into the public summary and
writes it as JSON, either to a stream or to a timestamped file.
"""

import json
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional, Sequence, TextIO

from .models import TOKEN_TYPE_ERC20, TOKEN_TYPE_ERC721, EnrichedContract, ResultSummary


def format_summary(contracts: Sequence[EnrichedContract]) -> ResultSummary:
    """
    Aggregate enriched contracts into a summary with per-type counts.

    Args:
        contracts: Enriched contracts, in classification order

    Returns:
        ResultSummary preserving the input order
    """
    return ResultSummary(
        total_contracts=len(contracts),
        erc721_count=sum(1 for c in contracts if c.token_type == TOKEN_TYPE_ERC721),
        erc20_count=sum(1 for c in contracts if c.token_type == TOKEN_TYPE_ERC20),
        contracts=list(contracts),
    )


def generate_timestamp() -> str:
    """
    Generate a timestamp string for filenames.

    Returns:
        Timestamp in YYYYMMDD_HHMMSS format
    """
    return datetime.now().strftime("%Y%m%d_%H%M%S")


def generate_filename(base_path: str, timestamp: Optional[str] = None) -> str:
    """
    Generate a timestamped filename for a summary file.

    Examples:
        generate_filename("deploys.json", "20241214_153022")
        -> "deploys_20241214_153022.json"
    """
    if timestamp is None:
        timestamp = generate_timestamp()

    path = Path(base_path)
    suffix = path.suffix or ".json"
    return str(path.parent / f"{path.stem}_{timestamp}{suffix}")


def write_json_to_stream(summary: ResultSummary, stream: TextIO) -> None:
    """Write a summary to a stream as indented JSON."""
    json.dump(summary.to_dict(), stream, indent=2)
    stream.write("\n")


def write_json(summary: ResultSummary, output_path: Optional[str] = None) -> Optional[str]:
    """
    Write a summary to a timestamped JSON file or stdout.

    Args:
        summary: Summary to write
        output_path: Base output path. If None, writes to stdout.

    Returns:
        Path of the written file, or None when writing to stdout
    """
    if output_path is None:
        write_json_to_stream(summary, sys.stdout)
        return None

    output_file = generate_filename(output_path)
    with open(output_file, "w", encoding="utf-8") as f:
        write_json_to_stream(summary, f)

    return output_file
