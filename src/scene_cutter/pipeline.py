# src/scene_cutter/pipeline.py
"""Sample-then-select pipeline."""

import logging

from scene_cutter.models import Frame, PipelineResult, ResultRecord, SceneSelection
from scene_cutter.sampler import FrameSampler, NoFrames, ProgressCallback
from scene_cutter.selector import SceneSelector

logger = logging.getLogger(__name__)


def build_records(frames: list[Frame], selections: list[SceneSelection]) -> list[ResultRecord]:
    """Pair each selection with the frame it points at, numbered from 1."""
    records = []
    for selection in selections:
        frame = frames[selection.frame_index]
        records.append(ResultRecord(
            position=len(records) + 1,
            frame_index=frame.index,
            timestamp=frame.timestamp,
            data=frame.data,
            reason=selection.reason
        ))
    return records


class ScenePipeline:
    """Run the frame sampler and the scene selector for one video and prompt."""

    def __init__(self, sampler: FrameSampler, selector: SceneSelector):
        self.sampler = sampler
        self.selector = selector

    def run(self, video_path: str, prompt: str, progress: ProgressCallback | None = None) -> PipelineResult:
        sampled = self.sampler.sample(video_path, progress=progress)
        frames = sampled.frames
        if not frames:
            raise NoFrames("Could not extract any frames from the video.")

        logger.info(f"Analyzing {len(frames)} frames for: {prompt!r}")
        selections = self.selector.select(frames, prompt)

        return PipelineResult(
            metadata=sampled.metadata,
            frames_extracted=len(frames),
            records=build_records(frames, selections)
        )
