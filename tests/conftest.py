"""Shared fixtures: in-memory HTTP transports for the image source and Gemini."""

import json

import httpx
import pytest

PNG_BYTES = b"\x89PNG\r\n\x1a\nfake-image-data"
IMAGE_URL = "https://cdn.example.com/cards/jane.png"


def gemini_body(text):
    """Build a generateContent response body holding ``text``."""
    return {"candidates": [{"content": {"parts": [{"text": text}]}}]}


class FakeServices:
    """Routes requests to a fake image host and a fake Gemini endpoint."""

    def __init__(self):
        self.image_status = 200
        self.image_body = PNG_BYTES
        self.image_type = "image/png"
        self.gemini_status = 200
        self.gemini_body = gemini_body('{"name": "Jane Doe"}')
        self.requests: list[httpx.Request] = []

    @property
    def image_requests(self):
        return [r for r in self.requests if "generateContent" not in r.url.path]

    @property
    def gemini_requests(self):
        return [r for r in self.requests if "generateContent" in r.url.path]

    def set_model_text(self, text):
        self.gemini_body = gemini_body(text)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if "generateContent" in request.url.path:
            if isinstance(self.gemini_body, (dict, list)) or self.gemini_body is None:
                content = json.dumps(self.gemini_body).encode()
            else:
                content = self.gemini_body
            return httpx.Response(
                self.gemini_status,
                content=content,
                headers={"content-type": "application/json"},
            )
        headers = {"content-type": self.image_type} if self.image_type else {}
        return httpx.Response(
            self.image_status, content=self.image_body, headers=headers
        )


@pytest.fixture
def services():
    return FakeServices()


@pytest.fixture
def client(services):
    return httpx.AsyncClient(transport=httpx.MockTransport(services.handler))
