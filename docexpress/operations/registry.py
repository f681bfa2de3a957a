"""Job type dispatch table and the processor that runs an operation for a job."""

import logging
from typing import Dict, List, Type
from uuid import UUID

from sqlalchemy.orm import Session

from docexpress.db.models import Job
from docexpress.models.job import JobType
from docexpress.models.options import parse_options
from docexpress.operations.base import InputFile, Operation
from docexpress.operations.document import DocxToPdf, PptxToPdf
from docexpress.operations.image import (
    CompressImage,
    ImageFormatConvert,
    ImageMerge,
    ImageToPdf,
    ImageToText,
    ImageTransform,
)
from docexpress.operations.pdf import (
    CompressPdf,
    PdfExtractImages,
    PdfExtractText,
    PdfMerge,
    PdfReorder,
    PdfSplit,
)
from docexpress.operations.video import CompressVideo
from docexpress.services.file_service import FileService
from docexpress.services.job_service import Processor

logger = logging.getLogger(__name__)

OPERATION_CLASSES: List[Type[Operation]] = [
    ImageToPdf,
    ImageToText,
    ImageFormatConvert,
    ImageTransform,
    ImageMerge,
    PdfMerge,
    PdfSplit,
    PdfReorder,
    PdfExtractText,
    PdfExtractImages,
    DocxToPdf,
    PptxToPdf,
    CompressImage,
    CompressPdf,
    CompressVideo,
]

OPERATIONS: Dict[JobType, Operation] = {cls.job_type: cls() for cls in OPERATION_CLASSES}

_missing = set(JobType) - set(OPERATIONS)
if _missing or len(OPERATIONS) != len(OPERATION_CLASSES):
    raise RuntimeError(
        f"Operation registry is inconsistent; missing: {sorted(t.value for t in _missing)}"
    )


def get_operation(job_type: JobType) -> Operation:
    return OPERATIONS[job_type]


def load_inputs(db: Session, job: Job) -> List[InputFile]:
    """
    Resolve a job's inputs to files on disk.

    Ownership is enforced against the job's owner, and every path must stay
    inside the storage root.
    """
    files = FileService.resolve_files(db, job.input_files or [], owner_id=job.owner_id)
    return [
        InputFile(
            path=FileService.ensure_within_storage_root(file),
            original_name=file.original_name,
            mime_type=file.mime_type,
            file_type=file.file_type,
        )
        for file in files
    ]


def build_processor(db: Session, job_type: JobType) -> Processor:
    """
    Build the processor the job engine runs for ``job_type``.

    The processor validates the job's inputs and options, runs the operation
    and registers every output as a file owned by the job's owner, stamped
    with the job id.
    """
    operation = get_operation(job_type)

    def process(job: Job) -> List[UUID]:
        inputs = load_inputs(db, job)
        operation.validate_inputs(inputs)
        options = parse_options(job_type, job.options)

        logger.info(f"Running {job_type.value} for job {job.job_id} on {len(inputs)} file(s)")

        output_ids = []
        for output in operation.run(inputs, options):
            file = FileService.create_output(db, output, job.owner_id, job_id=job.job_id)
            output_ids.append(file.file_id)
        return output_ids

    return process
