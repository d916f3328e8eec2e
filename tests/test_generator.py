"""Tests for the completion-server text generator."""

import json
import threading

import httpx
import pytest

from murmur.config import GeneratorConfig
from murmur.errors import GenerationError
from murmur.postprocess import CompletionServerGenerator


def sse(*texts: str, done: bool = True) -> str:
  events = [f"data: {json.dumps({'choices': [{'text': text}]})}\n\n" for text in texts]
  if done:
    events.append("data: [DONE]\n\n")
  return "".join(events)


class FakeServer:
  """Answers the two endpoints the generator uses and records completion requests."""

  def __init__(self, stream_body: str = "", status: int = 200, models_status: int = 200):
    self.stream_body = stream_body
    self.status = status
    self.models_status = models_status
    self.requests: list[dict] = []

  def __call__(self, request: httpx.Request) -> httpx.Response:
    if request.url.path == "/v1/models":
      return httpx.Response(self.models_status, json={"data": [{"id": "tiny-instruct"}]})
    if request.url.path == "/v1/completions":
      self.requests.append(json.loads(request.content))
      return httpx.Response(
        self.status, text=self.stream_body, headers={"content-type": "text/event-stream"}
      )
    return httpx.Response(404)


def make_generator(server, config: GeneratorConfig | None = None) -> CompletionServerGenerator:
  client = httpx.Client(transport=httpx.MockTransport(server), base_url="http://llm.test")
  return CompletionServerGenerator(config or GeneratorConfig(), client=client)


class TestConstruction:
  def test_checks_server_on_construction(self):
    server = FakeServer()
    generator = make_generator(server)
    generator.close()

  def test_unreachable_server_raises(self):
    def refuse(request: httpx.Request) -> httpx.Response:
      raise httpx.ConnectError("Connection refused", request=request)

    with pytest.raises(GenerationError, match="Cannot connect"):
      make_generator(refuse)

  def test_server_error_on_model_listing_raises(self):
    with pytest.raises(GenerationError, match="status 503"):
      make_generator(FakeServer(models_status=503))


class TestGenerate:
  def test_joins_streamed_tokens(self):
    server = FakeServer(sse("The meeting", " is on", " Tuesday."))
    generator = make_generator(server)

    assert generator.generate("prompt") == "The meeting is on Tuesday."

  def test_sends_fixed_sampling_parameters(self):
    server = FakeServer(sse("ok"))
    config = GeneratorConfig(model="tiny-instruct", max_tokens=64, seed=99)
    generator = make_generator(server, config)

    generator.generate("clean this")

    (payload,) = server.requests
    assert payload == {
      "prompt": "clean this",
      "max_tokens": 64,
      "top_k": 40,
      "top_p": 0.8,
      "temperature": 0.3,
      "seed": 99,
      "stream": True,
      "model": "tiny-instruct",
    }

  def test_model_omitted_when_unset(self):
    server = FakeServer(sse("ok"))
    make_generator(server).generate("x")

    assert "model" not in server.requests[0]

  def test_ignores_comments_and_malformed_events(self):
    body = ": keep-alive\n\ndata: {not json}\n\n" + sse("kept")
    generator = make_generator(FakeServer(body))

    assert generator.generate("x") == "kept"

  def test_stops_at_done_marker(self):
    body = sse("before") + sse("after", done=False)
    generator = make_generator(FakeServer(body))

    assert generator.generate("x") == "before"

  def test_pre_set_cancel_event_stops_immediately(self):
    cancel = threading.Event()
    cancel.set()
    generator = make_generator(FakeServer(sse("never", "seen")))

    assert generator.generate("x", cancel_event=cancel) == ""

  def test_http_error_raises(self):
    generator = make_generator(FakeServer("overloaded", status=500))

    with pytest.raises(GenerationError, match="error 500"):
      generator.generate("x")

  def test_timeout_raises(self):
    def slow(request: httpx.Request) -> httpx.Response:
      if request.url.path == "/v1/models":
        return httpx.Response(200, json={"data": []})
      raise httpx.ReadTimeout("timed out", request=request)

    generator = make_generator(slow)

    with pytest.raises(GenerationError, match="timed out"):
      generator.generate("x")
