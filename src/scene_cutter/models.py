"""Pydantic models for sampled frames, scene selections and tool responses."""

import base64

from pydantic import BaseModel, ConfigDict, Field, field_validator


class VideoMetadata(BaseModel):
    """Dimensions and length of a probed video."""
    width: int
    height: int
    duration: float
    fps: float | None = None
    stream_duration: float | None = None  # video stream only; audio may run longer


class Frame(BaseModel):
    """A single sampled still, JPEG bytes carried as base64."""
    index: int
    timestamp: float
    data: str

    @property
    def image_bytes(self) -> bytes:
        return base64.b64decode(self.data)


class SampledVideo(BaseModel):
    """Frames captured from one video, with the metadata they were sampled against."""
    metadata: VideoMetadata
    frames: list[Frame] = []


class SceneSelection(BaseModel):
    """One frame picked by the model, with its justification."""
    model_config = ConfigDict(populate_by_name=True)

    frame_index: int = Field(alias="frameIndex")
    reason: str


class SceneResponse(BaseModel):
    """Structured body returned by the model."""
    scenes: list[SceneSelection] = []

    @field_validator("scenes", mode="before")
    @classmethod
    def _missing_scenes_are_empty(cls, value):
        return [] if value is None else value


class ResultRecord(BaseModel):
    """A selected frame ready for display and download."""
    position: int  # 1-based
    frame_index: int
    timestamp: float
    data: str
    reason: str

    @property
    def filename(self) -> str:
        return f"scene_{self.position}.jpg"

    @property
    def image_bytes(self) -> bytes:
        return base64.b64decode(self.data)


class PipelineResult(BaseModel):
    """Outcome of one sample-then-select run."""
    metadata: VideoMetadata
    frames_extracted: int
    records: list[ResultRecord] = []

    @property
    def no_match(self) -> bool:
        return not self.records


class SceneResult(BaseModel):
    """A saved scene as reported by the tool server."""
    position: int
    frame_index: int
    timestamp: str
    reason: str
    filename: str
    path: str


class FindScenesResponse(BaseModel):
    """Response from the scene search tool."""
    status: str  # "success", "no_match" or "error"
    video_duration: str | None = None
    frames_extracted: int = 0
    scenes: list[SceneResult] = []
    output_dir: str | None = None
    message: str
