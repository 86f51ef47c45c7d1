"""
Read back partitions written by DataPartitioner.

All functions take the dataset output directory (the one holding
partitions/ and recent.json).
"""

import json
from pathlib import Path
from typing import Any, Dict, List

from ..models import PartitionLoadError
from .partitioner import INDEX_FILE, PARTITIONS_DIR, RECENT_FILE


def _read_json(path: Path) -> Any:
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise PartitionLoadError(f"Failed to load {path}: {e}")


def has_partitions(dataset_dir: str) -> bool:
    return (Path(dataset_dir) / PARTITIONS_DIR / INDEX_FILE).is_file()


def load_partition_index(dataset_dir: str) -> Dict[str, Any]:
    """
    Raises:
        PartitionLoadError: If the index is missing or unreadable
    """
    index = _read_json(Path(dataset_dir) / PARTITIONS_DIR / INDEX_FILE)
    if not isinstance(index, dict) or not isinstance(index.get("partitions"), list):
        raise PartitionLoadError(f"Malformed partition index in {dataset_dir}")
    return index


def load_partition(dataset_dir: str, quarter: str) -> List[Dict[str, Any]]:
    partition = _read_json(Path(dataset_dir) / PARTITIONS_DIR / f"{quarter}.json")
    return partition.get("data", []) if isinstance(partition, dict) else []


def load_all_partitions(dataset_dir: str) -> List[Dict[str, Any]]:
    """All partitioned records, in index (quarter) order."""
    records: List[Dict[str, Any]] = []
    for entry in load_partition_index(dataset_dir)["partitions"]:
        records.extend(load_partition(dataset_dir, entry["quarter"]))
    return records


def load_quarter_range(dataset_dir: str, start: str, end: str) -> List[Dict[str, Any]]:
    """
    Records of every partition with start <= quarter <= end.

    Raises:
        PartitionLoadError: If start > end
    """
    if start > end:
        raise PartitionLoadError(f"Invalid quarter range: {start}-{end}")
    records: List[Dict[str, Any]] = []
    for entry in load_partition_index(dataset_dir)["partitions"]:
        if start <= entry["quarter"] <= end:
            records.extend(load_partition(dataset_dir, entry["quarter"]))
    return records


def load_recent(dataset_dir: str) -> List[Dict[str, Any]]:
    """Records of recent.json, or [] when the index records no recent file."""
    path = Path(dataset_dir) / RECENT_FILE
    if not path.is_file():
        return []
    if has_partitions(dataset_dir) and not load_partition_index(dataset_dir).get("hasRecentFile"):
        return []
    payload = _read_json(path)
    return payload.get("data", []) if isinstance(payload, dict) else []
