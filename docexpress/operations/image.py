"""Image operations backed by Pillow and Tesseract."""

import logging
from typing import Iterator, List, Optional, Sequence, Tuple

import pytesseract
from PIL import Image, ImageColor, ImageOps, UnidentifiedImageError

from docexpress.core.config import settings
from docexpress.core.errors import InvalidRequestError, ProcessingError
from docexpress.models.file import FileType, OutputMeta
from docexpress.models.job import JobType
from docexpress.models.options import (
    CompressImageOptions,
    ImageFormat,
    ImageFormatConvertOptions,
    ImageMergeOptions,
    ImageToPdfOptions,
    ImageToTextOptions,
    ImageTransformOptions,
)
from docexpress.operations.base import InputFile, Operation

logger = logging.getLogger(__name__)

IMAGE_INPUTS = frozenset({FileType.IMAGE})

# Page sizes in PDF points (1/72 inch)
PAGE_SIZES = {
    "A4": (595, 842),
    "LETTER": (612, 792),
}

# Pillow save format and MIME type per output format
FORMAT_INFO = {
    ImageFormat.JPEG: ("JPEG", "image/jpeg"),
    ImageFormat.JPG: ("JPEG", "image/jpeg"),
    ImageFormat.PNG: ("PNG", "image/png"),
    ImageFormat.WEBP: ("WEBP", "image/webp"),
    ImageFormat.GIF: ("GIF", "image/gif"),
    ImageFormat.TIFF: ("TIFF", "image/tiff"),
    ImageFormat.BMP: ("BMP", "image/bmp"),
}

# Formats that cannot carry an alpha channel
OPAQUE_FORMATS = {"JPEG", "BMP"}


def open_image(item: InputFile) -> Image.Image:
    """Open an input image with EXIF orientation applied."""
    try:
        with Image.open(item.path) as img:
            img.load()
            return ImageOps.exif_transpose(img)
    except (UnidentifiedImageError, OSError) as e:
        raise ProcessingError(f"Cannot read image {item.original_name}: {e}") from None


def format_for(item: InputFile, requested: Optional[ImageFormat]) -> ImageFormat:
    """Requested output format, falling back to the input's own format."""
    if requested is not None:
        return requested
    subtype = item.mime_type.split("/")[-1].lower()
    try:
        return ImageFormat(subtype)
    except ValueError:
        return ImageFormat.PNG


def prepare_for(img: Image.Image, pil_format: str, background: str = "#FFFFFF") -> Image.Image:
    """Convert the image mode so ``pil_format`` can store it."""
    if pil_format in OPAQUE_FORMATS and img.mode in ("RGBA", "LA", "P"):
        rgba = img.convert("RGBA")
        canvas = Image.new("RGB", rgba.size, background)
        canvas.paste(rgba, mask=rgba.split()[-1])
        return canvas
    if img.mode not in ("RGB", "RGBA", "L", "LA", "P", "1"):
        return img.convert("RGB")
    return img


def save_image(
    img: Image.Image,
    image_format: ImageFormat,
    original_name: str,
    quality: Optional[int] = None,
) -> OutputMeta:
    pil_format, mime_type = FORMAT_INFO[image_format]
    img = prepare_for(img, pil_format)

    save_kwargs = {}
    if quality is not None and pil_format in ("JPEG", "WEBP"):
        save_kwargs["quality"] = quality
        save_kwargs["optimize"] = True
    elif pil_format == "PNG":
        save_kwargs["optimize"] = True

    path = Operation.output_path(image_format.value)
    img.save(path, format=pil_format, **save_kwargs)

    return OutputMeta(
        file_path=path,
        original_name=f"{original_name}.{image_format.value}",
        mime_type=mime_type,
    )


class ImageToPdf(Operation):
    """Combine images into one PDF, one page per image."""

    job_type = JobType.IMAGE_TO_PDF
    options_model = ImageToPdfOptions
    accepted_file_types = IMAGE_INPUTS

    def run(self, inputs: Sequence[InputFile], options: ImageToPdfOptions) -> Iterator[OutputMeta]:
        pages = [self._to_page(prepare_for(open_image(item), "JPEG"), options.page_size) for item in inputs]

        path = self.output_path("pdf")
        first, rest = pages[0], pages[1:]
        first.save(path, format="PDF", save_all=True, append_images=rest, resolution=72.0)

        name = inputs[0].stem if len(inputs) == 1 else "images"
        yield OutputMeta(file_path=path, original_name=f"{name}.pdf", mime_type="application/pdf")

    @staticmethod
    def _to_page(img: Image.Image, page_size: str) -> Image.Image:
        """Center the image on a white page, scaled down to fit."""
        img = img.convert("RGB")
        if page_size == "FIT":
            return img

        page_width, page_height = PAGE_SIZES[page_size]
        scale = min(page_width / img.width, page_height / img.height, 1.0)
        if scale < 1.0:
            img = img.resize(
                (max(1, int(img.width * scale)), max(1, int(img.height * scale))),
                Image.Resampling.LANCZOS,
            )

        page = Image.new("RGB", (page_width, page_height), "white")
        page.paste(img, ((page_width - img.width) // 2, (page_height - img.height) // 2))
        return page


class ImageToText(Operation):
    """OCR each image into a plain text file."""

    job_type = JobType.IMAGE_TO_TXT
    options_model = ImageToTextOptions
    accepted_file_types = IMAGE_INPUTS

    def run(self, inputs: Sequence[InputFile], options: ImageToTextOptions) -> Iterator[OutputMeta]:
        language = options.language or settings.tesseract_languages

        for item in inputs:
            img = open_image(item)
            try:
                text = pytesseract.image_to_string(img, lang=language)
            except pytesseract.TesseractNotFoundError:
                raise ProcessingError("Tesseract OCR is not available on this server") from None
            except pytesseract.TesseractError as e:
                raise ProcessingError(f"OCR failed for {item.original_name}: {e.message}") from None

            logger.info(f"Extracted {len(text)} characters from {item.original_name}")

            path = self.output_path("txt")
            path.write_text(text.strip(), encoding="utf-8")
            yield OutputMeta(file_path=path, original_name=f"{item.stem}.txt", mime_type="text/plain")


class ImageFormatConvert(Operation):
    job_type = JobType.IMAGE_FORMAT_CONVERT
    options_model = ImageFormatConvertOptions
    accepted_file_types = IMAGE_INPUTS

    def run(self, inputs: Sequence[InputFile], options: ImageFormatConvertOptions) -> Iterator[OutputMeta]:
        for item in inputs:
            yield save_image(open_image(item), options.target_format, item.stem, options.quality)


class ImageTransform(Operation):
    """Crop, resize, rotate, flip and desaturate, in that order."""

    job_type = JobType.IMAGE_TRANSFORM
    options_model = ImageTransformOptions
    accepted_file_types = IMAGE_INPUTS

    def run(self, inputs: Sequence[InputFile], options: ImageTransformOptions) -> Iterator[OutputMeta]:
        for item in inputs:
            img = self.apply(open_image(item), options, item.original_name)
            yield save_image(img, format_for(item, options.output_format), f"{item.stem}_edited")

    @staticmethod
    def apply(img: Image.Image, options: ImageTransformOptions, name: str = "image") -> Image.Image:
        if options.crop:
            box = options.crop
            if box.left + box.width > img.width or box.top + box.height > img.height:
                raise InvalidRequestError(f"Crop area exceeds the bounds of {name}")
            img = img.crop((box.left, box.top, box.left + box.width, box.top + box.height))

        if options.width or options.height:
            width = options.width or max(1, round(img.width * options.height / img.height))
            height = options.height or max(1, round(img.height * options.width / img.width))
            img = img.resize((width, height), Image.Resampling.LANCZOS)

        if options.rotate:
            # Pillow rotates counter-clockwise
            img = img.rotate(-options.rotate, expand=True)

        if options.flip_horizontal:
            img = ImageOps.mirror(img)
        if options.flip_vertical:
            img = ImageOps.flip(img)

        if options.grayscale:
            img = ImageOps.grayscale(img)

        return img


class ImageMerge(Operation):
    """Stack images into a single image."""

    job_type = JobType.IMAGE_MERGE
    options_model = ImageMergeOptions
    accepted_file_types = IMAGE_INPUTS
    min_inputs = 2

    def run(self, inputs: Sequence[InputFile], options: ImageMergeOptions) -> Iterator[OutputMeta]:
        try:
            background = ImageColor.getcolor(options.background, "RGBA")
        except ValueError:
            raise InvalidRequestError(f"Invalid background color: {options.background}") from None

        images = [open_image(item).convert("RGBA") for item in inputs]
        size, offsets = self.layout([img.size for img in images], options.direction, options.spacing)

        canvas = Image.new("RGBA", size, background)
        for img, offset in zip(images, offsets):
            canvas.paste(img, offset, img)

        yield save_image(canvas, options.output_format, "merged")

    @staticmethod
    def layout(
        sizes: List[Tuple[int, int]], direction: str, spacing: int
    ) -> Tuple[Tuple[int, int], List[Tuple[int, int]]]:
        """Canvas size and paste offsets; images are centered across the stacking axis."""
        gaps = spacing * (len(sizes) - 1)
        if direction == "horizontal":
            width = sum(w for w, _ in sizes) + gaps
            height = max(h for _, h in sizes)
        else:
            width = max(w for w, _ in sizes)
            height = sum(h for _, h in sizes) + gaps

        offsets = []
        cursor = 0
        for w, h in sizes:
            if direction == "horizontal":
                offsets.append((cursor, (height - h) // 2))
                cursor += w + spacing
            else:
                offsets.append(((width - w) // 2, cursor))
                cursor += h + spacing

        return (width, height), offsets


class CompressImage(Operation):
    job_type = JobType.COMPRESS_IMAGE
    options_model = CompressImageOptions
    accepted_file_types = IMAGE_INPUTS

    def run(self, inputs: Sequence[InputFile], options: CompressImageOptions) -> Iterator[OutputMeta]:
        for item in inputs:
            img = open_image(item)
            if options.max_width or options.max_height:
                img.thumbnail(
                    (options.max_width or img.width, options.max_height or img.height),
                    Image.Resampling.LANCZOS,
                )

            image_format = format_for(item, options.format)
            output = save_image(img, image_format, f"{item.stem}_compressed", options.quality)

            logger.info(
                f"Compressed {item.original_name}: {item.path.stat().st_size} -> "
                f"{output.file_path.stat().st_size} bytes"
            )
            yield output
