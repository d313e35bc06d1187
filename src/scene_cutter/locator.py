# src/scene_cutter/locator.py
"""Resolve a user-supplied video source to a local file."""

from pathlib import Path


class VideoLocator:
    """Finds videos either by absolute path or by filename in the videos directory."""

    def __init__(self, videos_dir: str):
        self.videos_dir = Path(videos_dir)

    def resolve(self, source: str) -> str:
        """Get full path for a video, checking that it is a readable file."""
        candidate = Path(source).expanduser()
        full_path = candidate if candidate.is_absolute() else self.videos_dir / candidate
        if not full_path.is_file():
            raise FileNotFoundError(f"File not found: {source} (looked in {self.videos_dir})")
        return str(full_path)
