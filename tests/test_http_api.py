from __future__ import annotations

import json

import httpx
import pytest
from fastapi.testclient import TestClient

from toolhub.api import http_api
from toolhub.image import service as image_service
from toolhub.image.client import ImageGenerationClient
from toolhub.llm.client import TextGenerationClient
from toolhub.llm.provider_config import ImageClientConfig, TextClientConfig


@pytest.fixture()
def api() -> TestClient:
    yield TestClient(http_api.app)
    http_api.set_upstream_client(None)
    image_service.set_default_client(None)


def _upstream(handler, api_key: str | None = "server-key") -> list[dict]:
    payloads: list[dict] = []

    def recording(request: httpx.Request) -> httpx.Response:
        payloads.append(json.loads(request.content))
        return handler(payloads[-1])

    http_api.set_upstream_client(
        TextGenerationClient(TextClientConfig(api_key=api_key), transport=httpx.MockTransport(recording))
    )
    return payloads


def _completion(text: str) -> httpx.Response:
    return httpx.Response(200, json={"choices": [{"message": {"content": text}}]})


def test_proxy_returns_content_and_model(api: TestClient) -> None:
    payloads = _upstream(lambda p: _completion("a joke"))

    response = api.post(
        "/api/ai/groq",
        json={"prompt": "tell a joke", "systemPrompt": "Be funny.", "options": {"temperature": 0.9, "maxTokens": 300}},
    )

    assert response.status_code == 200
    assert response.json() == {"content": "a joke", "model": "llama-3.1-8b-instant"}
    assert len(payloads) == 1
    assert payloads[0]["messages"][0] == {"role": "system", "content": "Be funny."}
    assert payloads[0]["temperature"] == 0.9
    assert payloads[0]["max_tokens"] == 300


def test_proxy_moves_to_next_model_on_rate_limit(api: TestClient) -> None:
    def handler(payload: dict) -> httpx.Response:
        if payload["model"] == "llama-3.1-8b-instant":
            return httpx.Response(429, json={"error": {"message": "Rate limit reached"}})
        return _completion("fallback answer")

    payloads = _upstream(handler)

    response = api.post("/api/ai/groq", json={"prompt": "hi"})

    assert response.status_code == 200
    assert response.json() == {"content": "fallback answer", "model": "allam-2-7b"}
    assert [p["model"] for p in payloads] == ["llama-3.1-8b-instant", "allam-2-7b"]


def test_proxy_tries_requested_model_first(api: TestClient) -> None:
    payloads = _upstream(lambda p: _completion("ok"))

    api.post("/api/ai/groq", json={"prompt": "hi", "options": {"model": "llama-3.3-70b-versatile"}})

    assert payloads[0]["model"] == "llama-3.3-70b-versatile"


def test_proxy_returns_non_retryable_errors_directly(api: TestClient) -> None:
    payloads = _upstream(lambda p: httpx.Response(401, json={"error": {"message": "Invalid API Key"}}))

    response = api.post("/api/ai/groq", json={"prompt": "hi"})

    assert response.status_code == 401
    assert response.json()["error"] == "Invalid API Key"
    assert len(payloads) == 1


def test_proxy_answers_503_when_every_model_fails(api: TestClient) -> None:
    payloads = _upstream(lambda p: httpx.Response(500, json={"error": {"message": "overloaded"}}))

    response = api.post("/api/ai/groq", json={"messages": [{"role": "user", "content": "hi"}]})

    assert response.status_code == 503
    assert response.json() == {"error": "overloaded"}
    assert len(payloads) == len(http_api.TEXT_FALLBACK_CHAIN)


def test_proxy_maps_offline_upstream_to_503(api: TestClient) -> None:
    def handler(payload: dict) -> httpx.Response:
        raise httpx.ConnectError("unreachable")

    _upstream(handler)

    response = api.post("/api/ai/groq", json={"prompt": "hi"})

    assert response.status_code == 503
    assert "internet connection" in response.json()["error"]


def test_proxy_validates_input(api: TestClient) -> None:
    _upstream(lambda p: _completion("unused"))

    assert api.post("/api/ai/groq", json={}).status_code == 400
    assert api.post("/api/ai/groq", json={"messages": [{"role": "user"}]}).status_code == 400
    bad_json = api.post("/api/ai/groq", content=b"{not json", headers={"Content-Type": "application/json"})
    assert bad_json.status_code == 400
    assert bad_json.json() == {"error": "Invalid JSON request body."}


def test_proxy_requires_server_key(api: TestClient) -> None:
    _upstream(lambda p: _completion("unused"), api_key=None)

    response = api.post("/api/ai/groq", json={"prompt": "hi"})

    assert response.status_code == 500


def test_should_try_next_classification() -> None:
    assert http_api.should_try_next(http_api.RemoteFailure("Rate limit reached", 400))
    assert http_api.should_try_next(http_api.RemoteFailure("bad gateway", 502))
    assert http_api.should_try_next(http_api.RemoteFailure("Please reduce the length of the messages", 400))
    assert http_api.should_try_next(http_api.RemoteFailure("too big", 413))
    assert not http_api.should_try_next(http_api.RemoteFailure("Invalid API Key", 401))


def _image_backend(routes: dict) -> list[str]:
    models: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        model = request.url.params["model"]
        models.append(model)
        return routes[model]

    image_service.set_default_client(
        ImageGenerationClient(ImageClientConfig(candidates=tuple(routes)), transport=httpx.MockTransport(handler))
    )
    return models


def test_image_endpoint_returns_locator(api: TestClient) -> None:
    models = _image_backend(
        {
            "A": httpx.Response(500),
            "B": httpx.Response(200, headers={"content-type": "image/png"}, content=b"png"),
        }
    )

    response = api.post("/api/ai/image", json={"prompt": "a red bicycle", "seed": 42})

    assert response.status_code == 200
    body = response.json()
    assert body["model"] == "B"
    assert body["seed"] == 42
    assert body["contentType"] == "image/png"
    assert "model=B" in body["url"]
    assert models == ["A", "B"]


def test_image_endpoint_hides_per_model_detail_on_exhaustion(api: TestClient) -> None:
    _image_backend({"A": httpx.Response(500), "B": httpx.Response(404)})

    response = api.post("/api/ai/image", json={"prompt": "cat"})

    assert response.status_code == 503
    error = response.json()["error"]
    assert "temporarily unavailable" in error
    assert "Model" not in error
    assert "500" not in error


def test_image_endpoint_rejects_bad_sizes(api: TestClient) -> None:
    models = _image_backend({"A": httpx.Response(500)})

    assert api.post("/api/ai/image", json={"prompt": "cat", "width": 0}).status_code == 422
    assert api.post("/api/ai/image", json={"prompt": " "}).status_code == 400
    assert models == []


def test_search_requests_use_search_models_only(api: TestClient) -> None:
    payloads = _upstream(lambda p: _completion("headlines"))

    response = api.post(
        "/api/ai/groq",
        json={"prompt": "news today", "search": True, "options": {"model": "llama-3.3-70b-versatile"}},
    )

    assert response.json() == {"content": "headlines", "model": "groq/compound"}
    assert [p["model"] for p in payloads] == ["groq/compound"]


def test_search_moves_on_when_model_is_not_accessible(api: TestClient) -> None:
    def handler(payload: dict) -> httpx.Response:
        if payload["model"] == "groq/compound":
            return httpx.Response(403, json={"error": {"message": "Forbidden"}})
        return _completion("mini answer")

    payloads = _upstream(handler)

    response = api.post("/api/ai/groq", json={"prompt": "news today", "search": True})

    assert response.status_code == 200
    assert response.json()["model"] == "groq/compound-mini"
    assert [p["model"] for p in payloads] == ["groq/compound", "groq/compound-mini"]


def test_search_answers_503_after_both_search_models_fail(api: TestClient) -> None:
    payloads = _upstream(lambda p: httpx.Response(404, json={"error": {"message": "model not found"}}))

    response = api.post("/api/ai/groq", json={"prompt": "news today", "search": True})

    assert response.status_code == 503
    assert response.json() == {"error": "model not found"}
    assert len(payloads) == 2


def test_access_errors_are_final_outside_search(api: TestClient) -> None:
    payloads = _upstream(lambda p: httpx.Response(404, json={"error": {"message": "model not found"}}))

    response = api.post("/api/ai/groq", json={"prompt": "hi"})

    assert response.status_code == 404
    assert len(payloads) == 1


def test_model_sequence() -> None:
    assert http_api.model_sequence(None, search=True) == ["groq/compound", "groq/compound-mini"]
    assert http_api.model_sequence("custom")[:2] == ["custom", "llama-3.1-8b-instant"]
    sequence = http_api.model_sequence("allam-2-7b")
    assert sequence[:2] == ["allam-2-7b", "llama-3.1-8b-instant"]
    assert len(sequence) == len(http_api.TEXT_FALLBACK_CHAIN)


def test_should_try_next_for_search_access_issues() -> None:
    for status in (401, 403, 404):
        err = http_api.RemoteFailure("denied", status)
        assert http_api.should_try_next(err, search=True)
        assert not http_api.should_try_next(err)
    assert http_api.should_try_next(http_api.RemoteFailure("model decommissioned", 400), search=True)


def test_null_options_fall_back_to_defaults(api: TestClient) -> None:
    payloads = _upstream(lambda p: _completion("ok"))

    response = api.post(
        "/api/ai/groq",
        json={"prompt": "hi", "options": {"maxTokens": None, "temperature": None, "model": None}},
    )

    assert response.status_code == 200
    assert payloads[0]["max_tokens"] == 1024
    assert payloads[0]["temperature"] == 0.7
    assert payloads[0]["model"] == "llama-3.1-8b-instant"


def test_numeric_options_are_forwarded_without_truncation(api: TestClient) -> None:
    payloads = _upstream(lambda p: _completion("ok"))

    api.post("/api/ai/groq", json={"prompt": "hi", "options": {"maxTokens": 250.5, "temperature": "0.4"}})

    assert payloads[0]["max_tokens"] == 250.5
    assert payloads[0]["temperature"] == 0.4


def test_non_numeric_options_are_rejected(api: TestClient) -> None:
    payloads = _upstream(lambda p: _completion("ok"))

    response = api.post("/api/ai/groq", json={"prompt": "hi", "options": {"maxTokens": "lots"}})

    assert response.status_code == 400
    assert payloads == []


@pytest.mark.parametrize("model", [["llama-3.3-70b-versatile"], {"id": "x"}, 42, "  "])
def test_non_string_model_override_is_ignored(api: TestClient, model) -> None:
    payloads = _upstream(lambda p: _completion("ok"))

    response = api.post("/api/ai/groq", json={"prompt": "hi", "options": {"model": model}})

    assert response.status_code == 200
    assert payloads[0]["model"] == "llama-3.1-8b-instant"


def _video_backend(handler) -> list[str]:
    models: list[str] = []

    def recording(request: httpx.Request) -> httpx.Response:
        models.append(request.url.params["model"])
        return handler(request)

    image_service.set_default_client(
        ImageGenerationClient(
            ImageClientConfig(video_candidates=("wan", "seedance")),
            transport=httpx.MockTransport(recording),
        )
    )
    return models


def test_video_endpoint_returns_locator(api: TestClient) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.params["model"] == "wan":
            return httpx.Response(500)
        return httpx.Response(200, headers={"content-type": "video/mp4"}, content=b"v" * 60_000)

    models = _video_backend(handler)

    response = api.post("/api/ai/video", json={"prompt": "waves at sunset"})

    assert response.status_code == 200
    body = response.json()
    assert body["model"] == "seedance"
    assert body["seed"] is None
    assert body["contentType"] == "video/mp4"
    assert "model=seedance" in body["url"]
    assert models == ["wan", "seedance"]


def test_video_endpoint_hides_per_model_detail_on_exhaustion(api: TestClient) -> None:
    _video_backend(lambda r: httpx.Response(200, headers={"content-type": "video/mp4"}, content=b"tiny"))

    response = api.post("/api/ai/video", json={"prompt": "waves"})

    assert response.status_code == 503
    error = response.json()["error"]
    assert "temporarily unavailable" in error
    assert "wan" not in error
    assert "bytes" not in error


def test_video_endpoint_maps_offline_to_503(api: TestClient) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("unreachable", request=request)

    models = _video_backend(handler)

    response = api.post("/api/ai/video", json={"prompt": "waves"})

    assert response.status_code == 503
    assert "internet connection" in response.json()["error"]
    assert models == ["wan"]


def test_image_status_reports_key_presence(api: TestClient) -> None:
    image_service.set_default_client(ImageGenerationClient(ImageClientConfig(api_key="pk-1")))
    assert api.get("/api/ai/image/status").json() == {"configured": True, "hasApiKey": True}

    image_service.set_default_client(ImageGenerationClient(ImageClientConfig()))
    assert api.get("/api/ai/image/status").json() == {"configured": True, "hasApiKey": False}
