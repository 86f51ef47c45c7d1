"""
Persist an output package (see UnifiedPipeline.create_output_package).
"""

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional

from ..models import PartitionError
from ..transformers.common import iso_timestamp, utc_now

logger = logging.getLogger(__name__)

ALL_DATA_FILE = "all-data.json"
METADATA_FILE = "metadata.json"


def build_dataset_descriptor(package: Dict[str, Any], now: Optional[datetime] = None) -> Dict[str, Any]:
    """Dataset-level descriptor written as metadata.json."""
    metadata = package.get("metadata") or {}
    partition_info = package.get("partition_info")
    if isinstance(partition_info, dict):
        partition_info = {k: v for k, v in partition_info.items() if k != "index"}

    return {
        "source": metadata.get("source"),
        "category": metadata.get("category"),
        "record_count": metadata.get("record_count", len(package.get("data") or [])),
        "quality": package.get("validation"),
        "update_frequency": metadata.get("update_frequency") or "unknown",
        "partition_info": partition_info,
        "processed_at": metadata.get("processed_at"),
        "generated_at": iso_timestamp(now or utc_now()),
    }


def write_output_package(
    package: Dict[str, Any],
    output_dir: str,
    now: Optional[datetime] = None,
) -> Dict[str, str]:
    """
    Write all-data.json and metadata.json.

    Returns:
        {"all_data": path, "metadata": path}

    Raises:
        PartitionError: If the files cannot be written
    """
    out = Path(output_dir)
    all_data_path = out / ALL_DATA_FILE
    metadata_path = out / METADATA_FILE
    try:
        out.mkdir(parents=True, exist_ok=True)
        with open(all_data_path, "w", encoding="utf-8") as f:
            json.dump({"data": package.get("data") or [], "metadata": package.get("metadata") or {}},
                      f, indent=2, default=str)
        with open(metadata_path, "w", encoding="utf-8") as f:
            json.dump(build_dataset_descriptor(package, now), f, indent=2, default=str)
    except OSError as e:
        raise PartitionError(f"Failed to write output package to {out}: {e}")

    logger.info(f"Wrote output package to {out}")
    return {"all_data": str(all_data_path), "metadata": str(metadata_path)}
