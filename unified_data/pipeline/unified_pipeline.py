"""
Unified data pipeline.

Orchestrates the processing of one batch:
1. Transform raw records with a category transformer
2. Enrich with geospatial, temporal and category-specific context
3. Validate against the category schema
4. Link to other categories' datasets (optional)
5. Partition by quarter when the batch is large enough

A failing stage stops the batch; the result keeps everything computed
before the failure and records the error.
"""

import logging
import time
import traceback
from dataclasses import dataclass, field, fields
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional

from ..config import PipelineConfig
from ..enrichment.geospatial import GeospatialEnricher
from ..enrichment.temporal import TemporalEnricher
from ..linking.data_linker import DataLinker
from ..models import PipelineError
from ..storage.partitioner import DataPartitioner
from ..transformers.common import iso_timestamp, utc_now
from ..transformers.registry import Transformer
from ..validation.schema_validator import ValidationReport, validate_dataset

logger = logging.getLogger(__name__)

# camelCase option names accepted from JSON-style callers
_OPTION_ALIASES = {
    "linkData": "link_data",
    "allDatasets": "all_datasets",
    "outputDir": "output_dir",
    "baselineDate": "baseline_date",
    "enrichGeospatial": "enrich_geospatial",
    "enrichTemporal": "enrich_temporal",
}


@dataclass
class PipelineOptions:
    enrich: bool = True
    validate: bool = True
    partition: bool = True
    link_data: bool = False
    all_datasets: Optional[Mapping[str, List[Dict[str, Any]]]] = None
    output_dir: Optional[str] = None
    baseline_date: Optional[str] = None
    enrich_geospatial: bool = True
    enrich_temporal: bool = True
    now: Optional[datetime] = None

    @classmethod
    def from_dict(cls, raw: Optional[Dict[str, Any]]) -> "PipelineOptions":
        known = {f.name for f in fields(cls)}
        values = {}
        for key, value in (raw or {}).items():
            key = _OPTION_ALIASES.get(key, key)
            if key in known:
                values[key] = value
            else:
                logger.warning(f"Ignoring unknown pipeline option: {key}")
        return cls(**values)


@dataclass
class PipelineResult:
    success: bool = False
    transformed: Optional[List[Dict[str, Any]]] = None
    enriched: Optional[List[Dict[str, Any]]] = None
    validated: Optional[ValidationReport] = None
    partitioned: Optional[Dict[str, Any]] = None
    errors: List[Dict[str, Any]] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    stats: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "transformed": self.transformed,
            "enriched": self.enriched,
            "validated": self.validated.to_dict() if self.validated else None,
            "partitioned": self.partitioned,
            "errors": self.errors,
            "warnings": self.warnings,
            "stats": self.stats,
        }


class UnifiedPipeline:
    """Runs transform -> enrich -> validate -> link -> partition for one batch."""

    def __init__(
        self,
        config: Optional[PipelineConfig] = None,
        geospatial_enricher: Optional[GeospatialEnricher] = None,
        partitioner: Optional[DataPartitioner] = None,
        linker: Optional[DataLinker] = None,
    ):
        self.config = config or PipelineConfig()
        self.geospatial_enricher = geospatial_enricher or GeospatialEnricher()
        self.partitioner = partitioner or DataPartitioner(
            chunk_size=self.config.partition_threshold,
            recent_days=self.config.recent_days,
        )
        self.linker = linker or DataLinker(
            spatial_radius_m=self.config.link_spatial_radius_m,
            temporal_window_days=self.config.link_temporal_window_days,
        )

    def process(
        self,
        raw_data: Any,
        metadata: Optional[Dict[str, Any]],
        transformer: Transformer,
        options: Optional[PipelineOptions] = None,
    ) -> PipelineResult:
        """
        Process one batch of raw records.

        Args:
            raw_data: Source records (list, or {"data": [...]})
            metadata: Dataset descriptor passed to the transformer
            transformer: Category transformer
            options: Stage switches; defaults run every stage except linking

        Returns:
            PipelineResult; success is False when a stage raised
        """
        options = options or PipelineOptions()
        metadata = metadata or {}
        result = PipelineResult()
        started = time.perf_counter()
        stage = "transform"

        try:
            logger.info(f"Transforming {transformer.category.value} data")
            transformed = transformer.transform(raw_data, metadata)
            result.transformed = transformed
            result.stats["recordCount"] = len(transformed)

            if not transformed:
                result.warnings.append("No records after transformation")
                logger.warning("No records after transformation")
                return result

            stage = "enrich"
            if options.enrich:
                logger.info(f"Enriching {len(transformed)} records")
                result.enriched = self.enrich_data(transformed, transformer, options)
            else:
                result.enriched = transformed

            stage = "validate"
            if options.validate:
                logger.info("Validating data")
                report = self.validate_data(result.enriched, transformer.category.value)
                result.validated = report
                if report.meets_threshold:
                    logger.info(f"Validation passed (score: {report.quality_score * 100:.1f}%)")
                else:
                    logger.warning(f"Validation quality below threshold (score: {report.quality_score * 100:.1f}%)")
                if report.errors:
                    result.warnings.append(f"{len(report.errors)} validation errors")

            stage = "link"
            if options.link_data and options.all_datasets:
                logger.info("Linking related data")
                result.enriched = self.link_data(result.enriched, options.all_datasets)

            stage = "partition"
            if options.partition and self.partitioner.should_partition(len(result.enriched)):
                logger.info(f"Partitioning {len(result.enriched)} records")
                dataset_name = metadata.get("name") or transformer.category.value
                result.partitioned = self.partition_data(result.enriched, dataset_name, options.output_dir, options.now)
                logger.info(f"Partitioned into {result.partitioned['partitionCount']} partitions")

            result.success = True

        except Exception as e:
            result.errors.append({
                "stage": stage,
                "message": str(e),
                "stack": traceback.format_exc(),
            })
            logger.error(f"Pipeline {stage} stage failed: {e}")

        finally:
            result.stats["processingTime"] = round((time.perf_counter() - started) * 1000, 3)

        return result

    def enrich_data(
        self,
        records: List[Dict[str, Any]],
        transformer: Optional[Transformer] = None,
        options: Optional[PipelineOptions] = None,
    ) -> List[Dict[str, Any]]:
        options = options or PipelineOptions()
        enriched = list(records)

        if options.enrich_geospatial:
            enriched = [
                {**r, "location": self.geospatial_enricher.enrich_location(r["location"])}
                if isinstance(r.get("location"), dict) else r
                for r in enriched
            ]

        baseline_date = options.baseline_date or self.config.baseline_date

        if options.enrich_temporal:
            temporal = TemporalEnricher(
                baseline_date=baseline_date,
                active_phase_end=self.config.active_phase_end,
            )
            enriched = [{**r, **temporal.enrich_temporal(r)} for r in enriched]

        if transformer is not None and transformer.enrich is not None:
            enriched = transformer.enrich(enriched, baseline_date=baseline_date)

        return enriched

    def validate_data(self, records: List[Dict[str, Any]], category: str) -> ValidationReport:
        return validate_dataset(records, category, threshold=self.config.quality_threshold)

    def link_data(
        self,
        records: List[Dict[str, Any]],
        all_datasets: Mapping[str, List[Dict[str, Any]]],
    ) -> List[Dict[str, Any]]:
        return self.linker.link_related_data(records, all_datasets)

    def partition_data(
        self,
        records: List[Dict[str, Any]],
        dataset_name: str,
        output_dir: Optional[str],
        now: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        """
        Raises:
            PipelineError: If output_dir is not set
        """
        if not output_dir:
            raise PipelineError("Output directory required for partitioning")
        return self.partitioner.partition_dataset(records, dataset_name, output_dir, now=now)

    def create_output_package(
        self,
        result: PipelineResult,
        metadata: Optional[Dict[str, Any]] = None,
        now: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        """Persistence-ready package: metadata, data, validation summary, partition info."""
        report = result.validated
        return {
            "metadata": {
                **(metadata or {}),
                "processed_at": iso_timestamp(now or utc_now()),
                "record_count": result.stats.get("recordCount", 0),
                "processing_time_ms": result.stats.get("processingTime"),
            },
            "data": result.enriched if result.enriched is not None else [],
            "validation": {
                "qualityScore": report.quality_score,
                "completeness": report.completeness,
                "consistency": report.consistency,
                "accuracy": report.accuracy,
                "meetsThreshold": report.meets_threshold,
                "errorCount": len(report.errors),
                "warningCount": len(report.warnings),
            } if report else None,
            "partition_info": result.partitioned,
        }


def process_with_pipeline(
    raw_data: Any,
    metadata: Optional[Dict[str, Any]],
    transformer: Transformer,
    options: Optional[PipelineOptions] = None,
    config: Optional[PipelineConfig] = None,
) -> PipelineResult:
    """Build a pipeline from config and process one batch."""
    return UnifiedPipeline(config).process(raw_data, metadata, transformer, options)
