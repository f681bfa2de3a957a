"""Typed option payloads, one per job type.

Requests carry options as a plain JSON object. ``parse_options`` turns that map
into the model registered for the job type before anything runs, so operations
only ever see validated, typed settings.
"""

from enum import Enum
from typing import Any, Dict, List, Literal, Mapping, Optional, Type

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from docexpress.core.errors import InvalidRequestError
from docexpress.models.job import JobType


class ImageFormat(str, Enum):
    JPEG = "jpeg"
    JPG = "jpg"
    PNG = "png"
    WEBP = "webp"
    GIF = "gif"
    TIFF = "tiff"
    BMP = "bmp"


class ImageQuality(int, Enum):
    LOW = 30
    MEDIUM = 60
    HIGH = 80
    ORIGINAL = 100


# Video compression presets
VIDEO_PRESETS: Dict[str, Dict[str, Any]] = {
    "low": {"resolution": "480p", "video_bitrate": "500k", "audio_bitrate": "64k", "width": 854, "height": 480},
    "medium": {"resolution": "720p", "video_bitrate": "1500k", "audio_bitrate": "128k", "width": 1280, "height": 720},
    "high": {"resolution": "1080p", "video_bitrate": "3000k", "audio_bitrate": "192k", "width": 1920, "height": 1080},
}


class OperationOptions(BaseModel):
    """Base for all option payloads. Unknown keys are rejected."""

    model_config = ConfigDict(extra="forbid", frozen=True)


class NoOptions(OperationOptions):
    pass


class ImageToPdfOptions(OperationOptions):
    page_size: Literal["A4", "LETTER", "FIT"] = "A4"


class ImageToTextOptions(OperationOptions):
    language: Optional[str] = None


class ImageFormatConvertOptions(OperationOptions):
    target_format: ImageFormat
    quality: int = Field(default=ImageQuality.HIGH.value, ge=1, le=100)


class CropBox(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    left: int = Field(ge=0)
    top: int = Field(ge=0)
    width: int = Field(gt=0)
    height: int = Field(gt=0)


class ImageTransformOptions(OperationOptions):
    """Applied in order: crop, resize, rotate, flip, grayscale."""

    crop: Optional[CropBox] = None
    width: Optional[int] = Field(default=None, gt=0)
    height: Optional[int] = Field(default=None, gt=0)
    rotate: Optional[int] = None
    flip_horizontal: bool = False
    flip_vertical: bool = False
    grayscale: bool = False
    output_format: Optional[ImageFormat] = None

    @model_validator(mode="after")
    def check_has_transform(self) -> "ImageTransformOptions":
        if not any((
            self.crop, self.width, self.height, self.rotate,
            self.flip_horizontal, self.flip_vertical, self.grayscale,
        )):
            raise ValueError("At least one transformation is required")
        return self


class ImageMergeOptions(OperationOptions):
    direction: Literal["vertical", "horizontal"] = "vertical"
    spacing: int = Field(default=0, ge=0)
    background: str = "#FFFFFF"
    output_format: ImageFormat = ImageFormat.PNG


class CompressImageOptions(OperationOptions):
    quality: int = Field(default=ImageQuality.MEDIUM.value, ge=1, le=100)
    max_width: Optional[int] = Field(default=None, gt=0)
    max_height: Optional[int] = Field(default=None, gt=0)
    format: Optional[ImageFormat] = None


class PageRange(BaseModel):
    """Inclusive, 1-based page range."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    start: int = Field(ge=1)
    end: int = Field(ge=1)

    @model_validator(mode="after")
    def check_order(self) -> "PageRange":
        if self.end < self.start:
            raise ValueError("Range end must not precede its start")
        return self


class PdfSplitOptions(OperationOptions):
    """Without ranges every page becomes its own file."""

    ranges: Optional[List[PageRange]] = Field(default=None, min_length=1)


class PdfReorderOptions(OperationOptions):
    page_order: List[int] = Field(..., min_length=1)

    @model_validator(mode="after")
    def check_pages(self) -> "PdfReorderOptions":
        if any(page < 1 for page in self.page_order):
            raise ValueError("Page numbers start at 1")
        return self


class CompressPdfOptions(OperationOptions):
    compression_level: int = Field(default=6, ge=0, le=9)
    remove_metadata: bool = False


class CompressVideoOptions(OperationOptions):
    preset: Literal["low", "medium", "high"] = "medium"


OPTIONS_MODELS: Dict[JobType, Type[OperationOptions]] = {
    JobType.IMAGE_TO_PDF: ImageToPdfOptions,
    JobType.IMAGE_TO_TXT: ImageToTextOptions,
    JobType.IMAGE_FORMAT_CONVERT: ImageFormatConvertOptions,
    JobType.IMAGE_TRANSFORM: ImageTransformOptions,
    JobType.IMAGE_MERGE: ImageMergeOptions,
    JobType.PDF_MERGE: NoOptions,
    JobType.PDF_SPLIT: PdfSplitOptions,
    JobType.PDF_REORDER: PdfReorderOptions,
    JobType.PDF_EXTRACT_TEXT: NoOptions,
    JobType.PDF_EXTRACT_IMAGES: NoOptions,
    JobType.DOCX_TO_PDF: NoOptions,
    JobType.PPTX_TO_PDF: NoOptions,
    JobType.COMPRESS_IMAGE: CompressImageOptions,
    JobType.COMPRESS_PDF: CompressPdfOptions,
    JobType.COMPRESS_VIDEO: CompressVideoOptions,
}


def parse_job_type(value: Any) -> JobType:
    """Coerce a tag into the closed job type enumeration."""
    if isinstance(value, JobType):
        return value
    try:
        return JobType(str(value).upper())
    except ValueError:
        raise InvalidRequestError(f"Unknown job type: {value}", code="invalid_job_type") from None


def parse_options(job_type: JobType, raw: Optional[Mapping[str, Any]]) -> OperationOptions:
    """
    Convert a raw options map into the typed model for ``job_type``.

    Raises:
        InvalidRequestError: If the map does not fit the model
    """
    model = OPTIONS_MODELS[job_type]
    try:
        return model.model_validate(dict(raw or {}))
    except ValidationError as e:
        details = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or 'options'}: {err['msg']}" for err in e.errors()
        )
        raise InvalidRequestError(
            f"Invalid options for {job_type.value}: {details}", code="invalid_options"
        ) from None
