from __future__ import annotations

import logging
import os
import time
from dataclasses import dataclass, field
from typing import Any, Mapping

import numpy as np
import requests
from requests import Response
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from scholarmatch.embeddings.model import EmbeddingUnavailableError, normalize_rows

DEFAULT_USER_AGENT = "scholarmatch/0.1"
DEFAULT_EMBEDDING_MODEL = "text-embedding-ada-002"
logger = logging.getLogger(__name__)
_SLOW_REQUEST_SECONDS = 2.0


@dataclass(slots=True)
class HttpEmbeddingProvider:
    """Client for an OpenAI-compatible ``POST /embeddings`` endpoint."""

    endpoint: str
    api_key: str | None = None
    model: str = DEFAULT_EMBEDDING_MODEL
    timeout_seconds: float = 10.0
    max_retries: int = 2
    backoff_factor: float = 0.5
    user_agent: str = DEFAULT_USER_AGENT
    extra_headers: Mapping[str, str] | None = None
    pool_maxsize: int = 8
    name: str = field(init=False)
    _session: requests.Session = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self.name = f"http:{self.model}"
        self._session = requests.Session()
        self._session.headers.update(
            {"User-Agent": self.user_agent, "Content-Type": "application/json"}
        )
        if self.api_key:
            self._session.headers.update(
                {"Authorization": f"Bearer {self.api_key}", "api-key": self.api_key}
            )
        if self.extra_headers:
            self._session.headers.update(dict(self.extra_headers))

        retry = Retry(
            total=self.max_retries,
            connect=self.max_retries,
            read=self.max_retries,
            status=self.max_retries,
            backoff_factor=self.backoff_factor,
            status_forcelist=(429, 500, 502, 503, 504),
            allowed_methods=frozenset({"POST"}),
            raise_on_status=False,
        )
        adapter = HTTPAdapter(max_retries=retry, pool_maxsize=self.pool_maxsize)
        self._session.mount("http://", adapter)
        self._session.mount("https://", adapter)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> HttpEmbeddingProvider:
        env = os.environ if environ is None else environ
        endpoint = env.get("EMBEDDING_API_URL", "").strip()
        if not endpoint:
            raise ValueError("EMBEDDING_API_URL must be set to use the HTTP embedding provider.")
        return cls(
            endpoint=endpoint,
            api_key=env.get("EMBEDDING_API_KEY") or None,
            model=env.get("EMBEDDING_MODEL") or DEFAULT_EMBEDDING_MODEL,
            timeout_seconds=float(env.get("EMBEDDING_TIMEOUT_SECONDS") or 10.0),
        )

    def close(self) -> None:
        self._session.close()

    @property
    def timeout_tuple(self) -> tuple[float, float]:
        connect_timeout = max(0.5, min(self.timeout_seconds, 5.0))
        read_timeout = max(connect_timeout, self.timeout_seconds)
        return connect_timeout, read_timeout

    def embed_texts(self, texts: list[str]) -> np.ndarray:
        if not texts:
            return np.empty((0, 0), dtype=np.float32)

        try:
            payload = self._post({"model": self.model, "input": texts}).json()
        except (requests.RequestException, ValueError) as exc:
            raise EmbeddingUnavailableError(
                f"Embedding request to {self.endpoint} failed: {type(exc).__name__}"
            ) from exc
        return normalize_rows(self._parse_vectors(payload, expected=len(texts)))

    def embed(self, text: str) -> np.ndarray:
        return self.embed_texts([text])[0]

    def _post(self, body: dict[str, Any]) -> Response:
        started_at = time.monotonic()
        # Shared across threads; the adapter's connection pool is thread-safe.
        response = self._session.post(self.endpoint, json=body, timeout=self.timeout_tuple)
        elapsed = time.monotonic() - started_at
        if elapsed > _SLOW_REQUEST_SECONDS:
            logger.warning("Slow embedding request %.3fs %s", elapsed, self.endpoint)
        response.raise_for_status()
        return response

    @staticmethod
    def _parse_vectors(payload: Any, *, expected: int) -> np.ndarray:
        rows = payload.get("data") if isinstance(payload, Mapping) else None
        if not isinstance(rows, list) or len(rows) != expected:
            raise EmbeddingUnavailableError("Embedding response is missing vectors.")
        ordered = sorted(rows, key=lambda row: int(row.get("index", 0)))
        try:
            return np.asarray([row["embedding"] for row in ordered], dtype=np.float32)
        except (KeyError, TypeError, ValueError) as exc:
            raise EmbeddingUnavailableError("Embedding response has malformed vectors.") from exc
