"""Office document conversion through headless LibreOffice."""

import logging
import shutil
import tempfile
from pathlib import Path
from typing import Iterator, Sequence

from docexpress.core.config import settings
from docexpress.core.errors import InvalidRequestError, ProcessingError
from docexpress.models.file import FileType, OutputMeta
from docexpress.models.job import JobType
from docexpress.models.options import NoOptions
from docexpress.operations.base import InputFile, Operation
from docexpress.operations.tools import run_command
from docexpress.services.storage_service import StorageService

logger = logging.getLogger(__name__)


class OfficeToPdf(Operation):
    """Convert each office document to PDF with ``soffice --convert-to pdf``."""

    options_model = NoOptions
    accepted_file_types = frozenset({FileType.DOCUMENT})
    accepted_extensions: frozenset = frozenset()

    def validate_inputs(self, inputs: Sequence[InputFile]) -> None:
        super().validate_inputs(inputs)
        for item in inputs:
            if Path(item.original_name).suffix.lower() not in self.accepted_extensions:
                expected = ", ".join(sorted(self.accepted_extensions))
                raise InvalidRequestError(f"File {item.original_name} must be one of: {expected}")

    def run(self, inputs: Sequence[InputFile], options: NoOptions) -> Iterator[OutputMeta]:
        for item in inputs:
            yield self.convert(item)

    def convert(self, item: InputFile) -> OutputMeta:
        # LibreOffice names the output after the input, so work in a private directory
        scratch = StorageService.storage_root() / "temp"
        scratch.mkdir(parents=True, exist_ok=True)
        with tempfile.TemporaryDirectory(dir=scratch, prefix="soffice-") as workdir:
            source = Path(workdir) / f"input{Path(item.original_name).suffix.lower()}"
            shutil.copyfile(item.path, source)

            run_command(
                [
                    settings.soffice_binary,
                    "--headless",
                    "--norestore",
                    "--convert-to",
                    "pdf",
                    "--outdir",
                    workdir,
                    str(source),
                ],
                tool="LibreOffice",
            )

            produced = Path(workdir) / "input.pdf"
            if not produced.exists():
                raise ProcessingError(f"LibreOffice produced no PDF for {item.original_name}")

            path = self.output_path("pdf")
            shutil.move(str(produced), path)

        logger.info(f"Converted {item.original_name} to PDF")
        return OutputMeta(file_path=path, original_name=f"{item.stem}.pdf", mime_type="application/pdf")


class DocxToPdf(OfficeToPdf):
    job_type = JobType.DOCX_TO_PDF
    accepted_extensions = frozenset({".docx", ".doc"})


class PptxToPdf(OfficeToPdf):
    job_type = JobType.PPTX_TO_PDF
    accepted_extensions = frozenset({".pptx", ".ppt"})
