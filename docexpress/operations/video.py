"""Video compression through FFmpeg."""

import logging
from typing import Iterator, Sequence

from docexpress.core.config import settings
from docexpress.models.file import FileType, OutputMeta
from docexpress.models.job import JobType
from docexpress.models.options import VIDEO_PRESETS, CompressVideoOptions
from docexpress.operations.base import InputFile, Operation
from docexpress.operations.tools import run_command

logger = logging.getLogger(__name__)


class CompressVideo(Operation):
    """
    Re-encode videos to H.264/AAC MP4 at a preset bitrate.

    Frames are scaled down to fit the preset's resolution while keeping the
    aspect ratio; smaller videos are never scaled up.
    """

    job_type = JobType.COMPRESS_VIDEO
    options_model = CompressVideoOptions
    accepted_file_types = frozenset({FileType.VIDEO})

    @staticmethod
    def build_command(source: str, target: str, preset: str) -> list:
        config = VIDEO_PRESETS[preset]
        scale = (
            f"scale='min({config['width']},iw)':'min({config['height']},ih)'"
            ":force_original_aspect_ratio=decrease,scale=trunc(iw/2)*2:trunc(ih/2)*2"
        )
        return [
            settings.ffmpeg_binary,
            "-y",
            "-hide_banner",
            "-loglevel", "error",
            "-i", source,
            "-vf", scale,
            "-c:v", "libx264",
            "-preset", "medium",
            "-b:v", config["video_bitrate"],
            "-c:a", "aac",
            "-b:a", config["audio_bitrate"],
            "-movflags", "+faststart",
            target,
        ]

    def run(self, inputs: Sequence[InputFile], options: CompressVideoOptions) -> Iterator[OutputMeta]:
        for item in inputs:
            path = self.output_path("mp4")
            run_command(self.build_command(str(item.path), str(path), options.preset), tool="FFmpeg")

            logger.info(
                f"Compressed {item.original_name} with preset {options.preset}: "
                f"{item.path.stat().st_size} -> {path.stat().st_size} bytes"
            )
            yield OutputMeta(
                file_path=path,
                original_name=f"{item.stem}_{VIDEO_PRESETS[options.preset]['resolution']}.mp4",
                mime_type="video/mp4",
            )
