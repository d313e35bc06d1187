import json
import pytest
import requests
from unittest.mock import patch, MagicMock
from scene_cutter.models import Frame
from scene_cutter.selector import SceneSelector, TransportFailure, MalformedResponse, SelectionError


def make_frames(count):
    return [Frame(index=i, timestamp=float(i), data=f"ZnJhbWU{i}") for i in range(count)]


def gemini_body(payload):
    """Wrap generated JSON the way generateContent returns it."""
    text = payload if isinstance(payload, str) else json.dumps(payload)
    return {"candidates": [{"content": {"role": "model", "parts": [{"text": text}]}}]}


def mock_response(body, status=200):
    response = MagicMock()
    response.status_code = status
    response.json.return_value = body
    if status >= 400:
        response.raise_for_status.side_effect = requests.HTTPError(f"{status} Error")
    return response


def test_build_request_embeds_prompt_and_frames_in_order():
    selector = SceneSelector(api_key="key")
    payload = selector.build_request(make_frames(3), "red car")

    parts = payload["contents"][0]["parts"]
    assert '"red car"' in parts[0]["text"]
    assert [p["inlineData"]["data"] for p in parts[1:]] == ["ZnJhbWU0", "ZnJhbWU1", "ZnJhbWU2"]
    assert all(p["inlineData"]["mimeType"] == "image/jpeg" for p in parts[1:])

    config = payload["generationConfig"]
    assert config["responseMimeType"] == "application/json"
    items = config["responseSchema"]["properties"]["scenes"]["items"]
    assert items["required"] == ["frameIndex", "reason"]


def test_endpoint():
    selector = SceneSelector(api_key="key", model="gemini-2.5-flash", api_base="https://example.test/v1beta/")
    assert selector.endpoint == "https://example.test/v1beta/models/gemini-2.5-flash:generateContent"


def test_select_sends_key_in_header():
    selector = SceneSelector(api_key="secret", timeout=10)
    body = gemini_body({"scenes": []})
    with patch("scene_cutter.selector.requests.post", return_value=mock_response(body)) as post:
        selector.select(make_frames(1), "anything")

    kwargs = post.call_args.kwargs
    assert kwargs["headers"] == {"x-goog-api-key": "secret"}
    assert kwargs["timeout"] == 10
    assert "secret" not in post.call_args.args[0]


def test_select_drops_out_of_range_indices():
    selector = SceneSelector(api_key="key")
    body = gemini_body({"scenes": [
        {"frameIndex": 2, "reason": "a"},
        {"frameIndex": 9, "reason": "b"},
        {"frameIndex": -1, "reason": "c"},
        {"frameIndex": 4, "reason": "d"},
    ]})
    with patch("scene_cutter.selector.requests.post", return_value=mock_response(body)):
        selections = selector.select(make_frames(5), "prompt")

    assert [s.frame_index for s in selections] == [2, 4]
    assert [s.reason for s in selections] == ["a", "d"]


def test_select_empty_scenes_is_not_an_error():
    selector = SceneSelector(api_key="key")
    body = gemini_body({"scenes": []})
    with patch("scene_cutter.selector.requests.post", return_value=mock_response(body)):
        assert selector.select(make_frames(3), "prompt") == []


def test_select_missing_scenes_is_not_an_error():
    selector = SceneSelector(api_key="key")
    body = gemini_body({})
    with patch("scene_cutter.selector.requests.post", return_value=mock_response(body)):
        assert selector.select(make_frames(3), "prompt") == []


def test_select_without_api_key():
    selector = SceneSelector(api_key=None)
    with patch("scene_cutter.selector.requests.post") as post:
        with pytest.raises(TransportFailure, match="API key"):
            selector.select(make_frames(1), "prompt")
    post.assert_not_called()


def test_select_connection_error():
    selector = SceneSelector(api_key="key")
    with patch("scene_cutter.selector.requests.post", side_effect=requests.ConnectionError("refused")):
        with pytest.raises(TransportFailure, match="refused"):
            selector.select(make_frames(1), "prompt")


def test_select_http_error():
    selector = SceneSelector(api_key="bad")
    with patch("scene_cutter.selector.requests.post", return_value=mock_response({}, status=403)):
        with pytest.raises(SelectionError, match="403"):
            selector.select(make_frames(1), "prompt")


def test_select_non_json_text():
    selector = SceneSelector(api_key="key")
    body = gemini_body("Here are the scenes you asked for")
    with patch("scene_cutter.selector.requests.post", return_value=mock_response(body)):
        with pytest.raises(MalformedResponse):
            selector.select(make_frames(1), "prompt")


def test_select_wrong_field_types():
    selector = SceneSelector(api_key="key")
    body = gemini_body({"scenes": [{"frameIndex": "first", "reason": "x"}]})
    with patch("scene_cutter.selector.requests.post", return_value=mock_response(body)):
        with pytest.raises(MalformedResponse, match="scene schema"):
            selector.select(make_frames(1), "prompt")


def test_select_envelope_without_candidates():
    selector = SceneSelector(api_key="key")
    body = {"promptFeedback": {"blockReason": "SAFETY"}}
    with patch("scene_cutter.selector.requests.post", return_value=mock_response(body)):
        with pytest.raises(MalformedResponse, match="no generated content"):
            selector.select(make_frames(1), "prompt")
