"""
Text generator backed by a local OpenAI-compatible completion server.

Any server exposing `/v1/models` and a streaming `/v1/completions` endpoint works,
e.g. llama.cpp's llama-server serving a small instruction-tuned model.
"""

import json
import threading
import time

import httpx

from murmur.config import GeneratorConfig
from murmur.errors import GenerationError
from murmur.format import Pretty, Seconds
from murmur.logs import get_logger


class CompletionServerGenerator:
  """
  Streams completions from a local server with fixed, deterministic sampling.

  Sampling parameters (max tokens, top-k, top-p, temperature and seed) come from
  GeneratorConfig and are sent with every request. The response is consumed as a
  server-sent event stream so that a cancellation request takes effect between tokens.
  """

  def __init__(self, config: GeneratorConfig, client: httpx.Client | None = None) -> None:
    """
    :param config: Server location and sampling parameters.
    :param client: Pre-built HTTP client, mainly for tests. Owned by the generator.
    :raises GenerationError: If the server cannot be reached.
    """
    self.config = config
    self.logger = get_logger("gen")
    self._url = config.base_url
    self._client = client or httpx.Client(
      base_url=config.base_url,
      timeout=httpx.Timeout(config.timeout, connect=config.connect_timeout),
    )
    self._check_server()

  @classmethod
  def from_config(cls, config: GeneratorConfig) -> "CompletionServerGenerator":
    return cls(config)

  def _check_server(self) -> None:
    try:
      response = self._client.get("/v1/models")
    except httpx.ConnectError as e:
      raise GenerationError(f"Cannot connect to completion server at {self._url}") from e
    except httpx.HTTPError as e:
      raise GenerationError(f"Completion server check failed: {e}") from e

    if response.status_code != 200:
      raise GenerationError(f"Completion server returned status {response.status_code}")

    models = [m.get("id") for m in response.json().get("data", []) if isinstance(m, dict)]
    self.logger.info("Connected to completion server", url=self._url, models=Pretty(models))

  def _payload(self, prompt: str) -> dict:
    payload = {
      "prompt": prompt,
      "max_tokens": self.config.max_tokens,
      "top_k": self.config.top_k,
      "top_p": self.config.top_p,
      "temperature": self.config.temperature,
      "seed": self.config.seed,
      "stream": True,
    }
    if self.config.model:
      payload["model"] = self.config.model
    return payload

  def generate(self, prompt: str, cancel_event: threading.Event | None = None) -> str:
    """
    Stream a completion for `prompt`.

    :returns: The concatenated completion text. Partial text if cancelled.
    :raises GenerationError: On connection failure, timeout or a non-200 response.
    """
    parts: list[str] = []
    start = time.monotonic()

    try:
      with self._client.stream("POST", "/v1/completions", json=self._payload(prompt)) as response:
        if response.status_code != 200:
          response.read()
          raise GenerationError(
            f"Completion server error {response.status_code}: {response.text[:200]}"
          )

        for line in response.iter_lines():
          if cancel_event is not None and cancel_event.is_set():
            self.logger.debug("Generation cancelled", tokens=len(parts))
            break

          if not line.startswith("data: "):
            continue
          data_str = line[6:]
          if data_str.strip() == "[DONE]":
            break

          try:
            data = json.loads(data_str)
          except json.JSONDecodeError:
            self.logger.warning("Skipping malformed stream event", payload=data_str[:80])
            continue

          choices = data.get("choices") if isinstance(data, dict) else None
          if choices and isinstance(choices[0], dict):
            text = choices[0].get("text") or ""
            if text:
              parts.append(text)
    except httpx.ConnectError as e:
      raise GenerationError(f"Cannot connect to completion server at {self._url}") from e
    except httpx.TimeoutException as e:
      raise GenerationError("Completion request timed out") from e
    except httpx.HTTPError as e:
      raise GenerationError(f"Completion request failed: {e}") from e

    self.logger.debug(
      "Generation complete", tokens=len(parts), elapsed=Seconds(time.monotonic() - start)
    )
    return "".join(parts)

  def close(self) -> None:
    self._client.close()
