# src/scene_cutter/sampler.py
"""Fixed-interval frame sampling using ffprobe and ffmpeg."""

import base64
import json
import logging
import math
import subprocess
from enum import Enum
from typing import Callable

from scene_cutter.models import Frame, SampledVideo, VideoMetadata

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int], None]


class ExtractionError(Exception):
    """Error during frame extraction."""
    pass


class MetadataUnavailable(ExtractionError):
    """Video dimensions or duration could not be read."""
    pass


class DecodeFailure(ExtractionError):
    """A seek or capture step failed."""
    pass


class NoFrames(ExtractionError):
    """Sampling finished without capturing a single frame."""
    pass


class VideoTooLong(ExtractionError):
    """Video exceeds the configured duration limit."""
    pass


class SamplerState(Enum):
    AWAIT_METADATA = "await_metadata"
    SEEKING = "seeking"
    DONE = "done"
    FAILED = "failed"


def parse_frame_rate(value: str | None) -> float | None:
    """Parse an ffprobe rate such as "30000/1001"; "0/0" and garbage give None."""
    if not value:
        return None
    numerator, _, denominator = value.partition("/")
    try:
        rate = float(numerator) / float(denominator or 1)
    except (ValueError, ZeroDivisionError):
        return None
    return rate if math.isfinite(rate) and rate > 0 else None


def parse_duration(value: str | None) -> float | None:
    """Parse seconds ("2.000000") or a Matroska tag ("00:00:02.000000000")."""
    if not value:
        return None
    try:
        seconds = 0.0
        for part in str(value).split(":"):
            seconds = seconds * 60 + float(part)
    except ValueError:
        return None
    return seconds if math.isfinite(seconds) and seconds > 0 else None


class FrameSampler:
    """Capture one JPEG still per interval, from t=0 through the end of the video."""

    # Used when the frame rate is unknown
    END_MARGIN = 0.05

    def __init__(
        self,
        interval: float = 1.0,
        jpeg_quality: float = 0.8,
        max_duration: float | None = None,
        timeout: int = 30
    ):
        self.interval = interval
        self.jpeg_quality = jpeg_quality
        self.max_duration = max_duration
        self.timeout = timeout
        self.state = SamplerState.AWAIT_METADATA
        self.seek_index = 0

    def format_timestamp(self, seconds: float) -> str:
        """Format seconds as M:SS or MM:SS timestamp."""
        minutes = int(seconds // 60)
        secs = int(seconds % 60)
        return f"{minutes}:{secs:02d}"

    def jpeg_qscale(self) -> int:
        """Map a 0-1 quality onto ffmpeg's -q:v scale (2 best, 31 worst)."""
        qscale = int(round(31 - self.jpeg_quality * 29))
        return max(2, min(31, qscale))

    def seek_targets(self, duration: float) -> list[float]:
        """Timestamps 0, interval, 2*interval, ... not exceeding duration."""
        count = int(math.floor(duration / self.interval + 1e-9)) + 1
        return [round(i * self.interval, 6) for i in range(count)]

    def last_frame_start(self, metadata: VideoMetadata) -> float:
        """Latest timestamp that still lands on a decodable frame."""
        end = metadata.duration
        if metadata.stream_duration:
            end = min(end, metadata.stream_duration)
        if metadata.fps:
            start = end - 1.0 / metadata.fps
        else:
            start = end - self.END_MARGIN
        # Round down so "-ss" never lands just past the frame
        return max(math.floor((start - 0.0005) * 1000) / 1000, 0.0)

    def probe(self, video_path: str) -> VideoMetadata:
        """Read width, height, frame rate and durations with ffprobe."""
        cmd = [
            "ffprobe",
            "-v", "error",
            "-select_streams", "v:0",
            "-show_entries", "stream=width,height,duration,avg_frame_rate:stream_tags=DURATION:format=duration",
            "-of", "json",
            video_path
        ]

        try:
            result = subprocess.run(cmd, capture_output=True, text=True, timeout=self.timeout)
        except subprocess.TimeoutExpired:
            raise MetadataUnavailable(f"Probing video timed out after {self.timeout} seconds")
        except FileNotFoundError:
            raise MetadataUnavailable("ffprobe not found. Ensure ffmpeg is installed.")

        if result.returncode != 0:
            raise MetadataUnavailable(f"Could not load video metadata: {result.stderr.strip()}")

        try:
            info = json.loads(result.stdout)
            stream = info["streams"][0]
            stream_duration = parse_duration(stream.get("duration")) \
                or parse_duration(stream.get("tags", {}).get("DURATION"))
            raw_duration = info.get("format", {}).get("duration")
            if raw_duration in (None, "N/A"):
                if stream_duration is None:
                    raise MetadataUnavailable("Video duration is unknown")
                duration = stream_duration
            else:
                duration = float(raw_duration)
            metadata = VideoMetadata(
                width=int(stream["width"]),
                height=int(stream["height"]),
                duration=duration,
                fps=parse_frame_rate(stream.get("avg_frame_rate")),
                stream_duration=stream_duration
            )
        except (ValueError, KeyError, IndexError, TypeError, AttributeError) as e:
            raise MetadataUnavailable(f"Could not load video metadata: {e}")

        if not math.isfinite(metadata.duration) or metadata.duration < 0:
            raise MetadataUnavailable(f"Invalid video duration: {metadata.duration}")
        return metadata

    def _run_ffmpeg(self, cmd: list[str], timestamp: float) -> bytes:
        try:
            result = subprocess.run(cmd, capture_output=True, timeout=self.timeout)
        except subprocess.TimeoutExpired:
            raise DecodeFailure(f"Capturing frame at {timestamp:.2f}s timed out after {self.timeout} seconds")
        except FileNotFoundError:
            raise DecodeFailure("ffmpeg not found. Ensure ffmpeg is installed.")

        if result.returncode != 0:
            stderr = result.stderr.decode(errors="replace").strip()
            raise DecodeFailure(f"Could not decode frame at {timestamp:.2f}s: {stderr}")
        return result.stdout

    def _jpeg_output(self) -> list[str]:
        return [
            "-frames:v", "1",
            "-q:v", str(self.jpeg_qscale()),
            "-f", "image2pipe",
            "-c:v", "mjpeg",
            "pipe:1"
        ]

    def capture_frame(self, video_path: str, timestamp: float) -> bytes:
        """Seek to timestamp and return one native-resolution JPEG image."""
        cmd = ["ffmpeg", "-v", "error", "-ss", f"{timestamp:.3f}", "-i", video_path] + self._jpeg_output()
        image = self._run_ffmpeg(cmd, timestamp)
        if not image:
            raise DecodeFailure(f"No image decoded at {timestamp:.2f}s")
        return image

    def capture_last_frame(self, video_path: str, timestamp: float) -> bytes:
        """
        Return the frame showing at timestamp, falling back to the last frame
        of the stream when the seek lands past it.
        """
        cmd = ["ffmpeg", "-v", "error", "-ss", f"{timestamp:.3f}", "-i", video_path] + self._jpeg_output()
        image = self._run_ffmpeg(cmd, timestamp)
        if image:
            return image

        # Decode the final second backwards; the first output is the last frame
        window_start = max(timestamp - 1.0, 0.0)
        cmd = [
            "ffmpeg", "-v", "error",
            "-ss", f"{window_start:.3f}",
            "-i", video_path,
            "-vf", "reverse"
        ] + self._jpeg_output()
        image = self._run_ffmpeg(cmd, timestamp)
        if not image:
            raise DecodeFailure(f"No image decoded at {timestamp:.2f}s")
        return image

    def sample(self, video_path: str, progress: ProgressCallback | None = None) -> SampledVideo:
        """
        Sample the video at a fixed interval, strictly one seek at a time.

        Args:
            video_path: Path to video file
            progress: Called with (frames captured, estimated total) after each capture

        Returns:
            The probed metadata and the frames, ordered by timestamp and indexed from 0

        Raises:
            ExtractionError: On any probe or capture failure; nothing partial is returned
        """
        self.state = SamplerState.AWAIT_METADATA
        self.seek_index = 0
        frames: list[Frame] = []

        try:
            metadata = self.probe(video_path)
            if self.max_duration is not None and metadata.duration > self.max_duration:
                raise VideoTooLong(
                    f"Video exceeds {self.format_timestamp(self.max_duration)} limit "
                    f"({self.format_timestamp(metadata.duration)})."
                )

            total = int(metadata.duration // self.interval)
            last_start = self.last_frame_start(metadata)
            self.state = SamplerState.SEEKING
            for target in self.seek_targets(metadata.duration):
                if target < last_start:
                    image = self.capture_frame(video_path, target)
                else:
                    image = self.capture_last_frame(video_path, last_start)
                frames.append(Frame(
                    index=self.seek_index,
                    timestamp=target,
                    data=base64.b64encode(image).decode("ascii")
                ))
                self.seek_index += 1
                if progress:
                    progress(len(frames), total)

            if not frames:
                raise NoFrames("Could not extract any frames from the video.")
        except ExtractionError:
            self.state = SamplerState.FAILED
            raise

        self.state = SamplerState.DONE
        logger.debug(f"Sampled {len(frames)} frames from {video_path}")
        return SampledVideo(metadata=metadata, frames=frames)
