"""Settings read from the environment."""

import os

from pydantic import BaseModel, Field

from scene_cutter.selector import DEFAULT_API_BASE, DEFAULT_MODEL


class Settings(BaseModel):
    """Runtime configuration for the tool server."""
    api_key: str | None = None
    model: str = DEFAULT_MODEL
    api_base: str = DEFAULT_API_BASE
    request_timeout: float = Field(default=300, gt=0)
    videos_dir: str = "/videos"
    output_dir: str = "/tmp/scene-cutter"
    interval: float = Field(default=1.0, gt=0)
    jpeg_quality: float = Field(default=0.8, ge=0.0, le=1.0)
    max_duration: float = Field(default=30 * 60, gt=0)  # 30 minutes

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None) -> "Settings":
        env = os.environ if environ is None else environ
        # Map variable name -> field; unset variables fall back to defaults
        names = {
            "SCENE_CUTTER_MODEL": "model",
            "SCENE_CUTTER_API_BASE": "api_base",
            "SCENE_CUTTER_REQUEST_TIMEOUT": "request_timeout",
            "SCENE_CUTTER_VIDEOS_DIR": "videos_dir",
            "SCENE_CUTTER_OUTPUT_DIR": "output_dir",
            "SCENE_CUTTER_INTERVAL": "interval",
            "SCENE_CUTTER_JPEG_QUALITY": "jpeg_quality",
            "SCENE_CUTTER_MAX_DURATION": "max_duration",
        }
        values = {field: env[name] for name, field in names.items() if env.get(name)}
        values["api_key"] = env.get("GEMINI_API_KEY") or env.get("API_KEY")
        return cls(**values)
