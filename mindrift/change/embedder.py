"""
Injectable Embedding Service for Mindrift

The engine never loads an embedding model itself. Callers construct an
object satisfying the Embedder protocol (for example a wrapper around a
sentence-transformer model) and hand it to SemanticChangeClassifier,
which owns its open/close lifecycle.

Usage:
    with SemanticChangeClassifier(MyEmbedder()) as classifier:
        detail = classifier.classify(old_text, new_text)
"""

import logging
from typing import Optional, Protocol, Sequence, runtime_checkable

from mindrift.change.classifier import classify_change
from mindrift.models import SemanticChangeDetail

logger = logging.getLogger(__name__)


@runtime_checkable
class Embedder(Protocol):
    """
    Text embedding service with an explicit lifecycle.

    open() is called before the first embed() and close() when the owner
    is done; both must be safe to call on an already open/closed service.
    """

    def open(self) -> None: ...

    def close(self) -> None: ...

    def embed(self, text: str) -> Sequence[float]: ...


class SemanticChangeClassifier:
    """
    Classifies edits by embedding both texts with an injected Embedder.

    The classifier holds no state of its own besides the embedder, so a
    single instance can be reused for any number of edits.
    """

    def __init__(self, embedder: Embedder) -> None:
        """
        Args:
            embedder: The embedding service to use. It is opened lazily on
                      the first classification or when entering the context.
        """
        self._embedder = embedder
        self._opened = False

    def __enter__(self) -> "SemanticChangeClassifier":
        self.open()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @property
    def is_open(self) -> bool:
        return self._opened

    def open(self) -> None:
        if not self._opened:
            logger.debug("Opening embedder %s", type(self._embedder).__name__)
            self._embedder.open()
            self._opened = True

    def close(self) -> None:
        if self._opened:
            logger.debug("Closing embedder %s", type(self._embedder).__name__)
            self._embedder.close()
            self._opened = False

    def classify(
        self,
        old_text: str,
        new_text: str,
        magnitude: Optional[float] = None,
    ) -> SemanticChangeDetail:
        """
        Embed both texts and classify the edit.

        Args:
            old_text: Text before the edit
            new_text: Text after the edit
            magnitude: Precomputed semantic diff, if already known

        Returns:
            SemanticChangeDetail for the edit
        """
        self.open()
        old_embedding = self._embedder.embed(old_text)
        new_embedding = self._embedder.embed(new_text)
        return classify_change(old_text, new_text, old_embedding, new_embedding, magnitude)
