"""PDF operations backed by pypdf."""

import logging
import mimetypes
from pathlib import Path
from typing import Iterator, List, Sequence

from pypdf import PdfReader, PdfWriter
from pypdf.errors import PyPdfError

from docexpress.core.errors import InvalidRequestError, ProcessingError
from docexpress.models.file import FileType, OutputMeta
from docexpress.models.job import JobType
from docexpress.models.options import (
    CompressPdfOptions,
    NoOptions,
    PageRange,
    PdfReorderOptions,
    PdfSplitOptions,
)
from docexpress.operations.base import InputFile, Operation

logger = logging.getLogger(__name__)

PDF_INPUTS = frozenset({FileType.PDF})
PDF_MIME = "application/pdf"


def open_pdf(item: InputFile) -> PdfReader:
    try:
        reader = PdfReader(item.path)
        if reader.is_encrypted:
            raise ProcessingError(f"{item.original_name} is password protected")
        # Touch the page tree so broken files fail here
        len(reader.pages)
    except (PyPdfError, OSError, ValueError) as e:
        raise ProcessingError(f"Cannot read PDF {item.original_name}: {e}") from None
    return reader


def write_pdf(writer: PdfWriter, original_name: str) -> OutputMeta:
    path = Operation.output_path("pdf")
    with open(path, "wb") as fh:
        writer.write(fh)
    return OutputMeta(file_path=path, original_name=original_name, mime_type=PDF_MIME)


def check_page(page: int, page_count: int, name: str) -> None:
    if page > page_count:
        raise InvalidRequestError(f"Page {page} is out of range for {name} ({page_count} pages)")


class PdfMerge(Operation):
    """Concatenate PDFs in request order."""

    job_type = JobType.PDF_MERGE
    options_model = NoOptions
    accepted_file_types = PDF_INPUTS
    min_inputs = 2

    def run(self, inputs: Sequence[InputFile], options: NoOptions) -> Iterator[OutputMeta]:
        writer = PdfWriter()
        for item in inputs:
            for page in open_pdf(item).pages:
                writer.add_page(page)

        logger.info(f"Merged {len(inputs)} PDFs into {len(writer.pages)} pages")
        yield write_pdf(writer, "merged.pdf")


class PdfSplit(Operation):
    """
    Split each PDF by page ranges.

    Without ranges every page becomes its own document. Ranges are 1-based
    and inclusive.
    """

    job_type = JobType.PDF_SPLIT
    options_model = PdfSplitOptions
    accepted_file_types = PDF_INPUTS

    def run(self, inputs: Sequence[InputFile], options: PdfSplitOptions) -> Iterator[OutputMeta]:
        for item in inputs:
            reader = open_pdf(item)
            page_count = len(reader.pages)
            ranges = options.ranges or [PageRange(start=n, end=n) for n in range(1, page_count + 1)]

            for page_range in ranges:
                check_page(page_range.end, page_count, item.original_name)

            for page_range in ranges:
                writer = PdfWriter()
                for index in range(page_range.start - 1, page_range.end):
                    writer.add_page(reader.pages[index])

                if page_range.start == page_range.end:
                    suffix = f"page_{page_range.start}"
                else:
                    suffix = f"pages_{page_range.start}-{page_range.end}"
                yield write_pdf(writer, f"{item.stem}_{suffix}.pdf")


class PdfReorder(Operation):
    """Rebuild a PDF from a list of page numbers; pages may repeat or be dropped."""

    job_type = JobType.PDF_REORDER
    options_model = PdfReorderOptions
    accepted_file_types = PDF_INPUTS
    max_inputs = 1

    def run(self, inputs: Sequence[InputFile], options: PdfReorderOptions) -> Iterator[OutputMeta]:
        item = inputs[0]
        reader = open_pdf(item)
        page_count = len(reader.pages)

        for page in options.page_order:
            check_page(page, page_count, item.original_name)

        writer = PdfWriter()
        for page in options.page_order:
            writer.add_page(reader.pages[page - 1])

        yield write_pdf(writer, f"{item.stem}_reordered.pdf")


class PdfExtractText(Operation):
    job_type = JobType.PDF_EXTRACT_TEXT
    options_model = NoOptions
    accepted_file_types = PDF_INPUTS

    def run(self, inputs: Sequence[InputFile], options: NoOptions) -> Iterator[OutputMeta]:
        for item in inputs:
            reader = open_pdf(item)
            try:
                pages: List[str] = [page.extract_text() or "" for page in reader.pages]
            except PyPdfError as e:
                raise ProcessingError(f"Text extraction failed for {item.original_name}: {e}") from None

            path = self.output_path("txt")
            path.write_text("\n\n".join(text.strip() for text in pages).strip(), encoding="utf-8")
            yield OutputMeta(file_path=path, original_name=f"{item.stem}.txt", mime_type="text/plain")


class PdfExtractImages(Operation):
    """Write every embedded image as its own file."""

    job_type = JobType.PDF_EXTRACT_IMAGES
    options_model = NoOptions
    accepted_file_types = PDF_INPUTS

    def run(self, inputs: Sequence[InputFile], options: NoOptions) -> Iterator[OutputMeta]:
        for item in inputs:
            reader = open_pdf(item)
            count = 0
            for page_number, page in enumerate(reader.pages, start=1):
                try:
                    images = list(page.images)
                except (PyPdfError, OSError, ValueError) as e:
                    logger.warning(f"Skipping images on page {page_number} of {item.original_name}: {e}")
                    continue

                for image in images:
                    count += 1
                    extension = Path(image.name).suffix or ".png"
                    mime_type = mimetypes.guess_type(f"x{extension}")[0] or "application/octet-stream"
                    path = self.output_path(extension)
                    path.write_bytes(image.data)
                    yield OutputMeta(
                        file_path=path,
                        original_name=f"{item.stem}_page{page_number}_{count}{extension}",
                        mime_type=mime_type,
                    )

            logger.info(f"Extracted {count} images from {item.original_name}")


class CompressPdf(Operation):
    job_type = JobType.COMPRESS_PDF
    options_model = CompressPdfOptions
    accepted_file_types = PDF_INPUTS

    def run(self, inputs: Sequence[InputFile], options: CompressPdfOptions) -> Iterator[OutputMeta]:
        for item in inputs:
            reader = open_pdf(item)
            writer = PdfWriter()
            for page in reader.pages:
                writer.add_page(page)

            for page in writer.pages:
                page.compress_content_streams(level=options.compression_level)

            if not options.remove_metadata and reader.metadata:
                writer.add_metadata({k: str(v) for k, v in reader.metadata.items()})

            output = write_pdf(writer, f"{item.stem}_compressed.pdf")
            logger.info(
                f"Compressed {item.original_name}: {item.path.stat().st_size} -> "
                f"{output.file_path.stat().st_size} bytes"
            )
            yield output
