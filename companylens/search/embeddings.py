# companylens/search/embeddings.py
"""
Embedding Client: turns query text into the fixed-size vector the ranker
compares against stored company embeddings.
"""
import concurrent.futures
import logging
import threading
from abc import ABC, abstractmethod
from typing import List, Optional

import requests

from companylens.config.settings import EmbeddingSettings
from companylens.core.cancellation import raise_if_cancelled, wait_for_result
from companylens.core.exceptions import ConfigurationError, EmbeddingUnavailableError

logger = logging.getLogger(__name__)


class EmbeddingClient(ABC):
    """Abstract Base Class for query embedding providers."""

    dimensions: int

    @abstractmethod
    def generate(self,
                 text: str,
                 cancel_event: Optional[threading.Event] = None) -> List[float]:
        """
        Embeds ``text``.

        Raises:
            EmbeddingUnavailableError: On any failure or timeout.
            SearchCancelledError: If ``cancel_event`` is set first.
        """
        pass

    def close(self) -> None:
        pass


class OpenAIEmbeddingClient(EmbeddingClient):
    """
    Client for an OpenAI-compatible ``/embeddings`` endpoint.

    The HTTP call runs on a worker thread so the caller can abandon it as
    soon as the cancel event is set. No retries are made here.
    """

    def __init__(self, settings: EmbeddingSettings):
        if not settings.api_key:
            raise ConfigurationError(
                "EMBEDDING_API_KEY (or OPENAI_API_KEY) is not configured.")
        self.settings = settings
        self.url = f"{settings.base_url}/embeddings"
        self.dimensions = settings.dimensions
        self.timeout = settings.timeout_seconds
        self.headers = {
            "Authorization": f"Bearer {settings.api_key}",
            "Content-Type": "application/json",
        }
        self._executor = concurrent.futures.ThreadPoolExecutor(
            max_workers=4, thread_name_prefix="embedding")
        logger.info(
            f"{self.__class__.__name__} initialized (model={settings.model}, "
            f"dimensions={settings.dimensions}).")

    def generate(self,
                 text: str,
                 cancel_event: Optional[threading.Event] = None) -> List[float]:
        if not text or not text.strip():
            raise EmbeddingUnavailableError("Cannot embed empty text",
                                            url=self.url)
        raise_if_cancelled(cancel_event, "embedding")

        future = self._executor.submit(self._request_embedding, text)
        try:
            return wait_for_result(future,
                                   cancel_event=cancel_event,
                                   timeout=self.timeout,
                                   stage="embedding")
        except concurrent.futures.TimeoutError:
            logger.error(f"Embedding request timed out after {self.timeout}s")
            raise EmbeddingUnavailableError(
                f"Embedding request timed out after {self.timeout} seconds",
                url=self.url)

    def _request_embedding(self, text: str) -> List[float]:
        payload = {
            "model": self.settings.model,
            "input": text,
            "dimensions": self.dimensions,
        }
        logger.debug(f"Requesting embedding for {len(text)} chars from {self.url}")
        try:
            response = requests.post(self.url,
                                     json=payload,
                                     headers=self.headers,
                                     timeout=self.timeout)
            response.raise_for_status()
            data = response.json()
        except requests.exceptions.Timeout:
            logger.error(f"Timeout requesting {self.url}")
            raise EmbeddingUnavailableError(
                f"Embedding request timed out after {self.timeout} seconds",
                url=self.url)
        except requests.exceptions.HTTPError as e:
            status_code = e.response.status_code if e.response is not None else None
            logger.error(f"HTTP error {status_code} for {self.url}")
            raise EmbeddingUnavailableError(f"HTTP error {status_code}",
                                            url=self.url,
                                            status_code=status_code)
        except requests.exceptions.RequestException as e:
            logger.error(f"Request exception for {self.url}: {e}")
            raise EmbeddingUnavailableError(
                f"Embedding request failed: {e}", url=self.url)
        except ValueError as e:
            logger.error(f"Invalid JSON from {self.url}: {e}")
            raise EmbeddingUnavailableError(
                "Embedding response was not valid JSON", url=self.url)

        return self._parse_vector(data)

    def _parse_vector(self, data) -> List[float]:
        try:
            vector = [float(x) for x in data["data"][0]["embedding"]]
        except (KeyError, IndexError, TypeError, ValueError) as e:
            logger.error(f"Malformed embedding response from {self.url}: {e}")
            raise EmbeddingUnavailableError(
                "Malformed embedding response", url=self.url)
        if len(vector) != self.dimensions:
            logger.error(f"Embedding has {len(vector)} dimensions, "
                         f"expected {self.dimensions}")
            raise EmbeddingUnavailableError(
                f"Embedding has {len(vector)} dimensions, expected {self.dimensions}",
                url=self.url)
        return vector

    def close(self) -> None:
        self._executor.shutdown(wait=False, cancel_futures=True)
