"""Application services of the sitemap engine."""

from .distributor import DistributionPlan, SegmentAllocation, SegmentDistributor
from .ingestion import IngestionService, IngestResult
from .locks import LockRegistry
from .regenerator import INDEX_ARTIFACT, RebuildResult, Regenerator
from .stats import (
    BatchPage,
    DistributionSnapshot,
    EntryPage,
    SegmentDetail,
    StatsService,
)
from .sync import (
    BranchCandidate,
    BranchGenerationResult,
    BranchPreview,
    CleanupResult,
    ImportResult,
    SyncService,
    UpsertResult,
)
from .url_classifier import UrlClassification, classify_url

__all__ = [
    "BatchPage",
    "BranchCandidate",
    "BranchGenerationResult",
    "BranchPreview",
    "CleanupResult",
    "DistributionPlan",
    "DistributionSnapshot",
    "EntryPage",
    "INDEX_ARTIFACT",
    "ImportResult",
    "IngestResult",
    "IngestionService",
    "LockRegistry",
    "RebuildResult",
    "Regenerator",
    "SegmentAllocation",
    "SegmentDetail",
    "SegmentDistributor",
    "StatsService",
    "SyncService",
    "UpsertResult",
    "UrlClassification",
    "classify_url",
]
