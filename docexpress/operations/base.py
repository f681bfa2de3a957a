"""Base operation interface."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import ClassVar, FrozenSet, Iterator, Optional, Sequence, Type

from docexpress.core.errors import InvalidRequestError
from docexpress.models.file import FileType, OutputMeta
from docexpress.models.job import JobType
from docexpress.models.options import OperationOptions
from docexpress.services.storage_service import StorageService


@dataclass(frozen=True)
class InputFile:
    """A resolved input, decoupled from the ORM record."""

    path: Path
    original_name: str
    mime_type: str
    file_type: FileType

    @property
    def stem(self) -> str:
        return Path(self.original_name).stem or "file"


class Operation(ABC):
    """
    Base class for file operations.

    Subclasses declare which job type they serve, their option model, which
    file types they accept and how many inputs they take, then implement
    ``run`` as a generator of outputs so each one can be registered as soon
    as it exists.
    """

    job_type: ClassVar[JobType]
    options_model: ClassVar[Type[OperationOptions]]
    accepted_file_types: ClassVar[FrozenSet[FileType]]
    min_inputs: ClassVar[int] = 1
    max_inputs: ClassVar[Optional[int]] = None

    def validate_inputs(self, inputs: Sequence[InputFile]) -> None:
        """
        Reject inputs this operation cannot handle before any work starts.

        Raises:
            InvalidRequestError: On a wrong input count or file type
        """
        if len(inputs) < self.min_inputs:
            raise InvalidRequestError(
                f"{self.job_type.value} requires at least {self.min_inputs} input file(s)"
            )
        if self.max_inputs is not None and len(inputs) > self.max_inputs:
            raise InvalidRequestError(
                f"{self.job_type.value} accepts at most {self.max_inputs} input file(s)"
            )

        expected = " or ".join(sorted(t.value for t in self.accepted_file_types))
        for item in inputs:
            if item.file_type not in self.accepted_file_types:
                raise InvalidRequestError(f"File {item.original_name} is not a(n) {expected} file")

    @abstractmethod
    def run(self, inputs: Sequence[InputFile], options: OperationOptions) -> Iterator[OutputMeta]:
        """
        Perform the transformation.

        Args:
            inputs: Validated input files
            options: Parsed options of type ``options_model``

        Yields:
            One OutputMeta per written output file
        """

    @staticmethod
    def output_path(extension: str) -> Path:
        return StorageService.temp_path(extension)
