"""Pipeline - deduplicación y procesamiento serializado de lecturas."""

from .deduplication import ConsecutiveDeduplicator, payload_hash
from .processor import ReadingPipeline, PipelineResult

__all__ = [
    "ConsecutiveDeduplicator",
    "payload_hash",
    "ReadingPipeline",
    "PipelineResult",
]
