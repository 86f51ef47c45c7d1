"""
Quarter-based partitioning of large record sets.

Layout written under the output directory:
    partitions/<YYYY-Qn>.json   one Partition object per quarter
    partitions/index.json       Partition Index
    recent.json                 records inside the recent window (if any)
"""

import json
import logging
from collections import defaultdict
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from ..enrichment.temporal import parse_date, quarter_key
from ..models import PartitionError
from ..transformers.common import iso_timestamp, utc_now

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 1000
DEFAULT_RECENT_DAYS = 90
PARTITIONS_DIR = "partitions"
INDEX_FILE = "index.json"
RECENT_FILE = "recent.json"


def get_date_range(records: Sequence[Dict[str, Any]], date_field: str = "date") -> Dict[str, Optional[str]]:
    dates = sorted(d for d in (parse_date(r.get(date_field)) for r in records) if d is not None)
    if not dates:
        return {"start": None, "end": None}
    return {"start": dates[0].isoformat(), "end": dates[-1].isoformat()}


def _write_json(path: Path, payload: Dict[str, Any]) -> None:
    try:
        with open(path, "w", encoding="utf-8") as f:
            json.dump(payload, f, indent=2, default=str)
    except OSError as e:
        raise PartitionError(f"Failed to write {path}: {e}")
    logger.debug(f"Wrote {path}")


class DataPartitioner:
    """
    Splits records into quarter partitions plus a recent window.

    chunk_size is the single partitioning threshold: datasets with at least
    chunk_size records are partitioned.
    """

    def __init__(self, chunk_size: int = DEFAULT_CHUNK_SIZE, recent_days: int = DEFAULT_RECENT_DAYS):
        self.chunk_size = chunk_size
        self.recent_days = recent_days

    def should_partition(self, record_count: int) -> bool:
        return record_count >= self.chunk_size

    def partition_by_quarter(self, records: Sequence[Dict[str, Any]], date_field: str = "date") -> Dict[str, List[Dict[str, Any]]]:
        """Group records by quarter key; records without a parseable date are dropped."""
        partitions: Dict[str, List[Dict[str, Any]]] = defaultdict(list)
        for record in records:
            key = quarter_key(record.get(date_field))
            if key is not None:
                partitions[key].append(record)
        return {k: partitions[k] for k in sorted(partitions)}

    def generate_recent_data(
        self,
        records: Sequence[Dict[str, Any]],
        now: Optional[datetime] = None,
        date_field: str = "date",
    ) -> List[Dict[str, Any]]:
        """Records dated on or after now - recent_days."""
        cutoff = (now or utc_now()).date() - timedelta(days=self.recent_days)
        recent = []
        for record in records:
            d = parse_date(record.get(date_field))
            if d is not None and d >= cutoff:
                recent.append(record)
        return recent

    def create_partition_index(
        self,
        partitions: Dict[str, List[Dict[str, Any]]],
        dataset_name: str,
        has_recent_file: bool,
        now: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        entries = [
            {
                "quarter": quarter,
                "recordCount": len(records),
                "dateRange": get_date_range(records),
                "fileName": f"{quarter}.json",
            }
            for quarter, records in sorted(partitions.items())
        ]
        return {
            "dataset": dataset_name,
            "totalPartitions": len(entries),
            "totalRecords": sum(e["recordCount"] for e in entries),
            "partitions": entries,
            "hasRecentFile": has_recent_file,
            "recentFileName": RECENT_FILE if has_recent_file else None,
            "generated_at": iso_timestamp(now or utc_now()),
        }

    def partition_dataset(
        self,
        records: Sequence[Dict[str, Any]],
        dataset_name: str,
        output_dir: Optional[str],
        now: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        """
        Write quarter partitions, the recent window and the index.

        Args:
            records: Canonical records
            dataset_name: Name recorded in the index
            output_dir: Directory receiving partitions/ and recent.json
            now: Reference time for the recent window and index timestamp

        Returns:
            {partitioned, partitionCount, totalRecords, partitionedRecords,
             recentRecords, hasRecentFile, index}

        Raises:
            PartitionError: If output_dir is missing or a file cannot be written
        """
        if not self.should_partition(len(records)):
            return {"partitioned": False, "partitionCount": 0, "totalRecords": len(records)}

        if not output_dir:
            raise PartitionError("Output directory required for partitioning")

        now = now or utc_now()
        out = Path(output_dir)
        partitions_dir = out / PARTITIONS_DIR
        try:
            partitions_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise PartitionError(f"Cannot create {partitions_dir}: {e}")

        partitions = self.partition_by_quarter(records)
        for quarter, quarter_records in partitions.items():
            _write_json(partitions_dir / f"{quarter}.json", {
                "quarter": quarter,
                "recordCount": len(quarter_records),
                "dateRange": get_date_range(quarter_records),
                "data": quarter_records,
            })

        recent = self.generate_recent_data(records, now)
        if recent:
            _write_json(out / RECENT_FILE, {
                "description": f"Last {self.recent_days} days of data",
                "recordCount": len(recent),
                "dateRange": get_date_range(recent),
                "data": recent,
                "metadata": {
                    "dataset": dataset_name,
                    "recent_days": self.recent_days,
                    "cutoff": (now.date() - timedelta(days=self.recent_days)).isoformat(),
                    "generated_at": iso_timestamp(now),
                },
            })
        else:
            # A previous run may have left one behind
            try:
                (out / RECENT_FILE).unlink(missing_ok=True)
            except OSError as e:
                raise PartitionError(f"Cannot remove stale {out / RECENT_FILE}: {e}")

        index = self.create_partition_index(partitions, dataset_name, bool(recent), now)
        _write_json(partitions_dir / INDEX_FILE, index)

        dropped = len(records) - index["totalRecords"]
        if dropped:
            logger.warning(f"{dropped} records without a parseable date excluded from partitions")
        logger.info(
            f"Partitioned {dataset_name}: {index['totalRecords']} records into "
            f"{len(partitions)} quarters, {len(recent)} recent"
        )

        return {
            "partitioned": True,
            "partitionCount": len(partitions),
            "totalRecords": len(records),
            "partitionedRecords": index["totalRecords"],
            "recentRecords": len(recent),
            "hasRecentFile": bool(recent),
            "index": index,
        }
