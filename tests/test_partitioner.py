"""
Tests for quarter partitioning and partition loading.
"""

import json
from datetime import date, datetime, timedelta, timezone

import pytest

from unified_data.models import PartitionError, PartitionLoadError
from unified_data.storage.loader import (
    has_partitions,
    load_all_partitions,
    load_partition,
    load_partition_index,
    load_quarter_range,
    load_recent,
)
from unified_data.storage.partitioner import (
    INDEX_FILE,
    PARTITIONS_DIR,
    RECENT_FILE,
    DataPartitioner,
    get_date_range,
)

NOW = datetime(2024, 6, 30, tzinfo=timezone.utc)


def dated_records(start, count, prefix="r"):
    return [
        {"id": f"{prefix}-{i}", "date": (start + timedelta(days=i % 90)).isoformat(), "value": i}
        for i in range(count)
    ]


class TestHelpers:
    """Tests for date ranges and quarter grouping."""

    def test_get_date_range(self):
        """The range should span the earliest and latest parseable dates."""
        records = [{"date": "2024-02-01"}, {"date": None}, {"date": "2024-01-05"}]

        assert get_date_range(records) == {"start": "2024-01-05", "end": "2024-02-01"}
        assert get_date_range([{}]) == {"start": None, "end": None}

    def test_partition_by_quarter(self):
        """Records should be grouped by quarter in key order; undated dropped."""
        records = [{"date": "2024-05-01"}, {"date": "2024-01-01"}, {"date": None}, {"date": "2023-12-31"}]

        partitions = DataPartitioner().partition_by_quarter(records)

        assert list(partitions) == ["2023-Q4", "2024-Q1", "2024-Q2"]
        assert sum(len(p) for p in partitions.values()) == 3

    def test_should_partition(self):
        """The threshold should be inclusive."""
        partitioner = DataPartitioner(chunk_size=10)

        assert partitioner.should_partition(9) is False
        assert partitioner.should_partition(10) is True

    def test_recent_window(self):
        """The recent window should include its cutoff day."""
        partitioner = DataPartitioner(recent_days=10)
        records = [{"date": "2024-06-19"}, {"date": "2024-06-20"}, {"date": "2024-06-30"}, {}]

        recent = partitioner.generate_recent_data(records, NOW)

        assert [r["date"] for r in recent] == ["2024-06-20", "2024-06-30"]


class TestPartitionDataset:
    """Tests for DataPartitioner.partition_dataset()."""

    def test_below_threshold(self, tmp_path):
        """Small datasets should not be written."""
        result = DataPartitioner(chunk_size=100).partition_dataset(
            dated_records(date(2024, 1, 1), 50), "small", str(tmp_path), now=NOW
        )

        assert result == {"partitioned": False, "partitionCount": 0, "totalRecords": 50}
        assert not (tmp_path / PARTITIONS_DIR).exists()

    def test_missing_output_dir_raises(self):
        """Partitioning without an output directory should raise."""
        with pytest.raises(PartitionError):
            DataPartitioner(chunk_size=1).partition_dataset([{"date": "2024-01-01"}], "x", None, now=NOW)

    def test_writes_layout(self, tmp_path):
        """Partitions, index and recent file should be written."""
        records = dated_records(date(2024, 1, 1), 60, "q1") + dated_records(date(2024, 4, 1), 60, "q2")

        result = DataPartitioner(chunk_size=100).partition_dataset(records, "events", str(tmp_path), now=NOW)

        assert result["partitioned"] is True
        assert result["partitionCount"] == 2
        assert result["recentRecords"] == 60
        assert result["hasRecentFile"] is True
        assert (tmp_path / PARTITIONS_DIR / "2024-Q1.json").is_file()
        assert (tmp_path / PARTITIONS_DIR / "2024-Q2.json").is_file()
        assert (tmp_path / RECENT_FILE).is_file()

        with open(tmp_path / PARTITIONS_DIR / INDEX_FILE, "r", encoding="utf-8") as f:
            index = json.load(f)
        assert index["dataset"] == "events"
        assert index["totalPartitions"] == 2
        assert index["totalRecords"] == sum(p["recordCount"] for p in index["partitions"]) == 120
        assert index["partitions"][0] == {
            "quarter": "2024-Q1",
            "recordCount": 60,
            "dateRange": {"start": "2024-01-01", "end": "2024-02-29"},
            "fileName": "2024-Q1.json",
        }
        assert index["recentFileName"] == RECENT_FILE
        assert index["generated_at"] == "2024-06-30T00:00:00Z"

    def test_no_recent_file_when_window_empty(self, tmp_path):
        """Old datasets should not get a recent file."""
        records = dated_records(date(2020, 1, 1), 20)

        result = DataPartitioner(chunk_size=10).partition_dataset(records, "old", str(tmp_path), now=NOW)

        assert result["hasRecentFile"] is False
        assert result["index"]["recentFileName"] is None
        assert not (tmp_path / RECENT_FILE).exists()

    def test_rerun_removes_stale_recent_file(self, tmp_path):
        """A re-run with an empty recent window should not leave the old recent file behind."""
        partitioner = DataPartitioner(chunk_size=3)
        partitioner.partition_dataset(dated_records(date(2024, 6, 20), 3, "new"), "events", str(tmp_path), now=NOW)
        assert len(load_recent(str(tmp_path))) == 3

        result = partitioner.partition_dataset(dated_records(date(2020, 1, 1), 3, "old"), "events", str(tmp_path), now=NOW)

        assert result["hasRecentFile"] is False
        assert not (tmp_path / RECENT_FILE).exists()
        assert load_recent(str(tmp_path)) == []

    def test_undated_records_excluded(self, tmp_path):
        """Records without a date should be left out of every partition."""
        records = dated_records(date(2024, 1, 1), 10) + [{"id": "x", "date": None}] * 5

        result = DataPartitioner(chunk_size=10).partition_dataset(records, "mixed", str(tmp_path), now=NOW)

        assert result["totalRecords"] == 15
        assert result["partitionedRecords"] == 10


class TestLoader:
    """Tests for reading partitions back."""

    @pytest.fixture
    def dataset_dir(self, tmp_path):
        records = (
            dated_records(date(2023, 10, 1), 30, "q4")
            + dated_records(date(2024, 1, 1), 30, "q1")
            + dated_records(date(2024, 4, 1), 30, "q2")
        )
        DataPartitioner(chunk_size=50).partition_dataset(records, "events", str(tmp_path), now=NOW)
        return str(tmp_path)

    def test_round_trip(self, dataset_dir):
        """Loading every partition should reconstruct the dated records."""
        loaded = load_all_partitions(dataset_dir)

        assert len(loaded) == 90
        assert {r["id"] for r in loaded} == {f"{p}-{i}" for p in ("q4", "q1", "q2") for i in range(30)}

    def test_index_and_single_partition(self, dataset_dir):
        """The index and a single quarter should be readable."""
        assert has_partitions(dataset_dir) is True
        assert [p["quarter"] for p in load_partition_index(dataset_dir)["partitions"]] == [
            "2023-Q4", "2024-Q1", "2024-Q2",
        ]
        assert len(load_partition(dataset_dir, "2024-Q1")) == 30

    def test_quarter_range(self, dataset_dir):
        """Ranges should be inclusive on both ends."""
        assert len(load_quarter_range(dataset_dir, "2024-Q1", "2024-Q2")) == 60
        assert len(load_quarter_range(dataset_dir, "2023-Q4", "2023-Q4")) == 30

    def test_invalid_range_raises(self, dataset_dir):
        """A reversed range should raise."""
        with pytest.raises(PartitionLoadError):
            load_quarter_range(dataset_dir, "2024-Q2", "2024-Q1")

    def test_recent(self, dataset_dir):
        """The recent file should hold only records inside the window."""
        recent = load_recent(dataset_dir)

        assert len(recent) == 30
        assert all(r["id"].startswith("q2-") for r in recent)

    def test_recent_ignored_when_index_has_none(self, dataset_dir):
        """A recent file the index does not record should not be returned."""
        index_path = f"{dataset_dir}/{PARTITIONS_DIR}/{INDEX_FILE}"
        with open(index_path, "r", encoding="utf-8") as f:
            index = json.load(f)
        index["hasRecentFile"] = False
        with open(index_path, "w", encoding="utf-8") as f:
            json.dump(index, f)

        assert load_recent(dataset_dir) == []

    def test_missing_dataset(self, tmp_path):
        """A directory without partitions should raise on index load."""
        assert has_partitions(str(tmp_path)) is False
        assert load_recent(str(tmp_path)) == []
        with pytest.raises(PartitionLoadError):
            load_partition_index(str(tmp_path))
