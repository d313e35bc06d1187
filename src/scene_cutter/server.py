# src/scene_cutter/server.py
"""MCP server for finding scenes in a video by description."""

import logging
from pathlib import Path

from mcp.server.fastmcp import FastMCP, Image

from scene_cutter.config import Settings
from scene_cutter.exporter import ResultExporter
from scene_cutter.locator import VideoLocator
from scene_cutter.models import FindScenesResponse, SceneResult
from scene_cutter.pipeline import ScenePipeline
from scene_cutter.sampler import ExtractionError, FrameSampler
from scene_cutter.selector import SceneSelector, SelectionError

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

settings = Settings.from_env()

# Initialize MCP server
mcp = FastMCP("scene-cutter")

# Initialize components
locator = VideoLocator(videos_dir=settings.videos_dir)
exporter = ResultExporter(output_base_dir=settings.output_dir)
sampler = FrameSampler(
    interval=settings.interval,
    jpeg_quality=settings.jpeg_quality,
    max_duration=settings.max_duration
)
selector = SceneSelector(
    api_key=settings.api_key,
    model=settings.model,
    api_base=settings.api_base,
    timeout=settings.request_timeout
)
pipeline = ScenePipeline(sampler=sampler, selector=selector)


def log_progress(captured: int, total: int) -> None:
    logger.info(f"Extracting frames... ({captured} / {total})")


@mcp.tool()
async def find_scenes(source: str, prompt: str) -> dict:
    """
    Find the frames of a video that match a description of a scene,
    and save each match as scene_N.jpg.

    Args:
        source: Local file path, or a filename inside the videos directory
        prompt: Description of the scene to look for,
                e.g. "a red car driving down the road"

    Returns:
        Dictionary with status, matched scenes and where they were saved
    """
    if not source.strip() or not prompt.strip():
        return FindScenesResponse(
            status="error",
            message="Please choose a video and enter a description of the scene."
        ).model_dump()

    try:
        video_path = locator.resolve(source)
        logger.info(f"Processing video: {video_path}")

        result = pipeline.run(video_path, prompt, progress=log_progress)
        duration = sampler.format_timestamp(result.metadata.duration)

        if result.no_match:
            return FindScenesResponse(
                status="no_match",
                video_duration=duration,
                frames_extracted=result.frames_extracted,
                message="The model found no scenes matching your description."
            ).model_dump()

        output_dir = exporter.create_output_dir(Path(video_path).stem)
        paths = exporter.save(result.records, output_dir)
        scenes = [
            SceneResult(
                position=record.position,
                frame_index=record.frame_index,
                timestamp=sampler.format_timestamp(record.timestamp),
                reason=record.reason,
                filename=record.filename,
                path=str(path)
            )
            for record, path in zip(result.records, paths)
        ]

        logger.info(f"Saved {len(scenes)} scenes to {output_dir}")
        return FindScenesResponse(
            status="success",
            video_duration=duration,
            frames_extracted=result.frames_extracted,
            scenes=scenes,
            output_dir=str(output_dir),
            message=f"Found {len(scenes)} matching scenes in {result.frames_extracted} frames. Saved to {output_dir}/"
        ).model_dump()

    except FileNotFoundError as e:
        logger.error(f"File not found: {e}")
        return FindScenesResponse(
            status="error",
            message=str(e)
        ).model_dump()

    except ExtractionError as e:
        logger.error(f"Extraction error: {e}")
        return FindScenesResponse(
            status="error",
            message=f"An error occurred: {e}"
        ).model_dump()

    except SelectionError as e:
        logger.error(f"Selection error: {e}")
        return FindScenesResponse(
            status="error",
            message=f"An error occurred: {e}"
        ).model_dump()

    except Exception as e:
        logger.exception(f"Unexpected error: {e}")
        return FindScenesResponse(
            status="error",
            message=f"Unexpected error: {str(e)}"
        ).model_dump()


@mcp.tool()
def preview_scene(path: str) -> Image:
    """
    Show a saved scene at full resolution.

    Args:
        path: Path of a scene_N.jpg returned by find_scenes
    """
    scene_path = Path(path).resolve()
    if not scene_path.is_relative_to(exporter.output_base_dir.resolve()):
        raise ValueError(f"Not a saved scene: {path}")
    if not scene_path.is_file():
        raise FileNotFoundError(f"Scene not found: {path}")
    return Image(data=scene_path.read_bytes(), format="jpeg")


def main():
    """Run the MCP server."""
    mcp.run()


if __name__ == "__main__":
    main()
