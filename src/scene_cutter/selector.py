# src/scene_cutter/selector.py
"""Scene selection through the Gemini generateContent API."""

import json
import logging

import requests
from pydantic import ValidationError

from scene_cutter.models import Frame, SceneResponse, SceneSelection

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gemini-2.5-pro"
DEFAULT_API_BASE = "https://generativelanguage.googleapis.com/v1beta"

INSTRUCTION_TEMPLATE = """You are a video analysis expert. Your task is to review a sequence of video frames and identify the frames that best match the user's request.
The frames follow this message in order, one per second of video; the first frame has index 0.
The user's request is: "{prompt}".
Return only the most accurate frames.
Return a JSON object containing an array named 'scenes'. Each object in the array must have two properties: 'frameIndex' (the index of the matching frame in the input sequence) and 'reason' (a short description of why this frame was chosen)."""

RESPONSE_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "scenes": {
            "type": "ARRAY",
            "items": {
                "type": "OBJECT",
                "properties": {
                    "frameIndex": {"type": "INTEGER"},
                    "reason": {"type": "STRING"},
                },
                "required": ["frameIndex", "reason"],
            },
        }
    },
}


class SelectionError(Exception):
    """Error while asking the model to select scenes."""
    pass


class TransportFailure(SelectionError):
    """The request never produced a successful HTTP response."""
    pass


class MalformedResponse(SelectionError):
    """The response did not match the expected scene schema."""
    pass


class SceneSelector:
    """Ask a multimodal model which frames match a free-text description."""

    def __init__(
        self,
        api_key: str | None,
        model: str = DEFAULT_MODEL,
        api_base: str = DEFAULT_API_BASE,
        timeout: float | None = 300
    ):
        self.api_key = api_key
        self.model = model
        self.api_base = api_base.rstrip("/")
        self.timeout = timeout

    @property
    def endpoint(self) -> str:
        return f"{self.api_base}/models/{self.model}:generateContent"

    def build_instruction(self, prompt: str) -> str:
        return INSTRUCTION_TEMPLATE.format(prompt=prompt)

    def build_request(self, frames: list[Frame], prompt: str) -> dict:
        """Instruction text first, then every frame as an inline JPEG, in order."""
        parts = [{"text": self.build_instruction(prompt)}]
        parts.extend(
            {"inlineData": {"mimeType": "image/jpeg", "data": frame.data}}
            for frame in frames
        )
        return {
            "contents": [{"role": "user", "parts": parts}],
            "generationConfig": {
                "responseMimeType": "application/json",
                "responseSchema": RESPONSE_SCHEMA,
            },
        }

    def _post(self, payload: dict) -> dict:
        if not self.api_key:
            raise TransportFailure("No API key configured. Set GEMINI_API_KEY.")

        try:
            response = requests.post(
                self.endpoint,
                json=payload,
                headers={"x-goog-api-key": self.api_key},
                timeout=self.timeout
            )
            response.raise_for_status()
        except requests.RequestException as e:
            raise TransportFailure(f"Request to {self.model} failed: {e}")

        try:
            return response.json()
        except ValueError as e:
            raise MalformedResponse(f"Response is not JSON: {e}")

    def parse_response(self, body: dict) -> SceneResponse:
        """Pull the generated text out of the envelope and validate it."""
        try:
            parts = body["candidates"][0]["content"]["parts"]
            text = "".join(part.get("text", "") for part in parts)
        except (KeyError, IndexError, TypeError, AttributeError):
            raise MalformedResponse(f"Response has no generated content: {json.dumps(body)[:200]}")

        try:
            return SceneResponse.model_validate_json(text)
        except ValidationError as e:
            raise MalformedResponse(f"Response does not match scene schema: {e}")

    def select(self, frames: list[Frame], prompt: str) -> list[SceneSelection]:
        """
        Send all frames plus the prompt and return the model's in-range picks.

        Args:
            frames: Sampled frames, indexed from 0
            prompt: Description of the wanted scene

        Returns:
            Selections in the model's order; empty when nothing matched

        Raises:
            TransportFailure: The request itself failed
            MalformedResponse: The body could not be read as the scene schema
        """
        logger.info(f"Sending {len(frames)} frames to {self.model}")
        body = self._post(self.build_request(frames, prompt))
        scenes = self.parse_response(body).scenes

        selections = []
        for scene in scenes:
            if 0 <= scene.frame_index < len(frames):
                selections.append(scene)
            else:
                logger.debug(f"Dropping out-of-range frameIndex {scene.frame_index}")
        return selections
