import asyncio
from functools import lru_cache
from typing import List, Optional
from langchain_core.embeddings import Embeddings
from tenacity import AsyncRetrying, stop_after_attempt, wait_exponential, retry_if_exception_type
from src.config import get_settings, EmbeddingSettings
from src.exceptions import EmbeddingError, EmbeddingRateLimitError, EmbeddingTimeoutError
from src.logging_config import get_logger
from src.observability import track

log = get_logger(__name__)

# Substrings that mark a key copied from an example .env
PLACEHOLDER_MARKERS = ("dummy", "placeholder", "your-", "your_", "changeme", "xxx")


def check_api_key(api_key: str, prefix: str) -> Optional[str]:
    """Return why a key is unusable, or None if it looks valid."""
    if not api_key or not api_key.strip():
        return "missing_api_key"
    if not api_key.startswith(prefix):
        return "invalid_key_format"
    lowered = api_key.lower()
    if any(marker in lowered for marker in PLACEHOLDER_MARKERS):
        return "placeholder_api_key"
    return None


def build_provider(settings: EmbeddingSettings, timeout: float) -> Embeddings:
    """Create the OpenAI embeddings client. Retries are handled by the gateway, not the client."""
    from langchain_openai import OpenAIEmbeddings
    return OpenAIEmbeddings(
        model=settings.model,
        api_key=settings.api_key,
        request_timeout=timeout,
        max_retries=0,
        chunk_size=settings.batch_size,
        check_embedding_ctx_length=False,
    )


def _classify_provider_error(e: Exception) -> EmbeddingError:
    """Map provider-specific failures onto our exception types."""
    if isinstance(e, EmbeddingError):
        return e
    if isinstance(e, asyncio.TimeoutError):
        return EmbeddingTimeoutError(str(e) or "Embedding request timed out")
    error_str = str(e).lower()
    if "rate limit" in error_str or "429" in error_str or "quota" in error_str:
        return EmbeddingRateLimitError(str(e))
    if "timeout" in error_str or "timed out" in error_str or "connection" in error_str:
        return EmbeddingTimeoutError(str(e))
    return EmbeddingError(str(e))


class EmbeddingGateway:
    """
    Wraps the embedding provider with a one-way breaker.

    The gateway starts enabled only when a plausible API key is configured.
    The first failed provider call trips it for the life of the instance; from
    then on `embed` answers with empty vectors without touching the network.
    Build a new gateway (see `reset_embedding_gateway`) to try again.
    """

    def __init__(
        self,
        settings: Optional[EmbeddingSettings] = None,
        provider: Optional[Embeddings] = None,
        timeout: Optional[float] = None,
        backoff_seconds: float = 0.5,
    ):
        full_settings = get_settings()
        self._settings = settings or full_settings.embedding
        self._timeout = timeout if timeout is not None else full_settings.timeout.embedding_seconds
        self._backoff_seconds = backoff_seconds
        self._provider: Optional[Embeddings] = None
        self._enabled = False

        reason = check_api_key(self._settings.api_key, self._settings.key_prefix)
        if reason:
            log.warning("embeddings_disabled", reason=reason, fallback="text_search")
            return

        try:
            self._provider = provider or build_provider(self._settings, self._timeout)
        except ImportError as e:
            log.error("embedder_import_failed", error=str(e))
            return
        except Exception as e:
            log.error("embedder_init_failed", error=str(e))
            return

        self._enabled = True
        log.info("embedder_initialized", model=self._settings.model, dimension=self._settings.dimension)

    @property
    def dimension(self) -> int:
        return self._settings.dimension

    def is_enabled(self) -> bool:
        return self._enabled

    def trip(self, reason: str) -> None:
        """Disable embeddings for the rest of this gateway's life."""
        if self._enabled:
            log.warning("embeddings_tripped", reason=reason, fallback="text_search")
        self._enabled = False

    async def _call_provider(self, texts: List[str]) -> List[List[float]]:
        try:
            return await self._provider.aembed_documents(texts)
        except Exception as e:
            raise _classify_provider_error(e) from e

    async def create_embeddings(self, texts: List[str]) -> List[List[float]]:
        """
        Call the provider, retrying transport failures with exponential backoff.

        Raises:
            EmbeddingError: once retries are exhausted or on a non-transient failure
        """
        vectors: List[List[float]] = []
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(self._settings.max_retries + 1),
            wait=wait_exponential(multiplier=self._backoff_seconds, max=8 * self._backoff_seconds),
            retry=retry_if_exception_type(EmbeddingTimeoutError),
            reraise=True,
        ):
            with attempt:
                vectors = await self._call_provider(texts)

        if len(vectors) != len(texts):
            raise EmbeddingError(f"Provider returned {len(vectors)} vectors for {len(texts)} inputs")
        for vector in vectors:
            if len(vector) != self.dimension:
                raise EmbeddingError(
                    f"Dimension mismatch: got {len(vector)}, expected {self.dimension}"
                )
        return [list(vector) for vector in vectors]

    @track(name="embed_texts")
    async def embed(self, texts: List[str]) -> List[List[float]]:
        """
        Embed a batch of texts.

        Returns one vector per input in input order. Every vector is empty when
        the gateway is disabled or the batch failed; a failure never raises.
        """
        if not texts:
            return []
        if not self._enabled:
            return [[] for _ in texts]

        try:
            vectors = await self.create_embeddings(texts)
            log.info("texts_embedded", count=len(texts), dimension=self.dimension)
            return vectors
        except Exception as e:
            log.error("embedding_failed", batch_size=len(texts), error_type=type(e).__name__, error=str(e))
            self.trip(reason=type(e).__name__)
            return [[] for _ in texts]

    async def embed_query(self, query: str) -> List[float]:
        """Embed a single query; empty list when unavailable."""
        if not query:
            return []
        return (await self.embed([query]))[0]


@lru_cache
def get_embedding_gateway() -> EmbeddingGateway:
    """
    Process-wide gateway.
    Cached so a tripped breaker stays tripped until explicitly reset.
    """
    return EmbeddingGateway()


def reset_embedding_gateway() -> None:
    """Drop the cached gateway so the next call re-reads configuration."""
    get_embedding_gateway.cache_clear()
