"""
Unified Data Pipeline.

Turns loosely-typed records fetched from humanitarian and statistical
sources into canonical records, enriches, scores, links and partitions
them, and provides the statistical analysis layer over the result.

Modules:
    models - Category/region enums and the exception hierarchy
    config - YAML-backed pipeline configuration
    logging_config - Logging bootstrap
    transformers - Per-category transform/enrich/validate functions
    enrichment - Geospatial, temporal and trend enrichers
    validation - Schema and time-series validators
    analysis - Descriptive stats, time-series analysis, aggregators
    linking - Cross-dataset linker
    storage - Partitioner, partition loader, output writer
    pipeline - Orchestrator
"""

__version__ = "1.0.0"
