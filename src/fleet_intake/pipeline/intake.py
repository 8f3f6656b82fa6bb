"""Document -> candidate work order.

Text extraction owns the first half of the progress scale; the candidate
extraction call reports 60 when it starts and 100 when it returns.
"""

import logging
from pathlib import Path
from typing import Optional

from fleet_intake.extraction.base import CandidateExtractor
from fleet_intake.ingestion import DocumentSource, DocumentTextExtractor, read_document_bytes
from fleet_intake.schemas.work_order import CandidateWorkOrder
from fleet_intake.tenancy.context import TenantScope, require_scope
from fleet_intake.utils.hashing import calculate_bytes_sha256
from fleet_intake.utils.progress import FULL_RANGE, ProgressCallback, ScaledProgress

logger = logging.getLogger(__name__)

TEXT_PROGRESS_RANGE = (0.0, 50.0)
CANDIDATE_STARTED = 0.6


class IntakeService:
    """Runs text extraction then candidate extraction for one document."""

    def __init__(self, text_extractor: DocumentTextExtractor, candidate_extractor: CandidateExtractor):
        self.text_extractor = text_extractor
        self.candidate_extractor = candidate_extractor

    def ingest(
        self,
        document: DocumentSource,
        scope: TenantScope,
        file_name: Optional[str] = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> CandidateWorkOrder:
        """
        Produce an untrusted candidate for human review.

        Raises:
            NoTenantError: If the scope is empty (before the document is read)
            ExtractionError: If the document is unreadable or too sparse; the
                candidate extractor is not called
            ExtractionServiceError: If candidate extraction fails
        """
        scope = require_scope(scope)
        if file_name is None and isinstance(document, (str, Path)):
            file_name = Path(document).name

        data = read_document_bytes(document)
        document_sha256 = calculate_bytes_sha256(data)

        raw_text = self.text_extractor.extract(
            data, on_progress=on_progress, progress_range=TEXT_PROGRESS_RANGE
        )

        progress = ScaledProgress(on_progress, FULL_RANGE)
        progress.report(CANDIDATE_STARTED)
        candidate = self.candidate_extractor.extract(raw_text, scope, source_file_name=file_name)
        candidate = candidate.model_copy(
            update={"source_file_name": file_name, "document_sha256": document_sha256}
        )
        progress.done()

        logger.info(
            f"Ingested {file_name or 'document'} for tenant {scope.tenant_id} "
            f"({len(raw_text)} chars, confidence={candidate.confidence.value})"
        )
        return candidate
