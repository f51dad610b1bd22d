"""
Knowledge search collaborator.

Products, sales scripts and objection answers are stored as text chunks tagged with a
``workspace_id`` and a ``category``.  The default back-end is a thin wrapper around Chroma.
"""

import asyncio
import json
import logging
import os
import threading
import time
import uuid
from abc import (
    ABC,
    abstractmethod,
)
from typing import (
    Any,
    Dict,
    List,
)

from pydantic import (
    BaseModel,
    Field,
)

from skillengine.core.errors import ContextLookupError

logger = logging.getLogger(__name__)

_DEFAULT_EMBED_MODEL = os.getenv("SKILLENGINE_EMBED_MODEL", "all-MiniLM-L6-v2")  # small; CPU-only


class KnowledgeItem(BaseModel):
    """A single stored chunk."""

    id: str
    content: str
    category: str | None = None
    value: Dict[str, Any] = Field(default_factory=dict)
    score: float | None = None


class SearchResult(BaseModel):
    """Search response; empty ``items`` is a normal outcome."""

    items: List[KnowledgeItem] = Field(default_factory=list)
    total_found: int = 0
    search_time_ms: float = 0.0


class KnowledgeSearch(ABC):
    """Contract for the context / knowledge search collaborator."""

    @abstractmethod
    async def search(
        self, workspace_id: str, query: str, limit: int = 5, category: str | None = None
    ) -> SearchResult:
        """Return up to *limit* items similar to *query*.  An empty *query* lists items."""


class ChromaKnowledgeStore(KnowledgeSearch):
    """
    Chroma wrapper for storing & querying sales knowledge.

    Each item is one document:
      text     = free-text description of the product / script / answer
      metadata = { "workspace_id": str, "category": str, "value": json-encoded extra fields }
    """

    def __init__(
        self,
        collection_name: str = "sales_knowledge",
        host: str = "chroma",  # service name in docker-compose
        port: int = 8000,
        client: Any = None,
        embedding_function: Any = None,
    ):
        # Nothing connects here; an unreachable Chroma must only fail the searches.
        self._collection_name = collection_name
        self._host = host
        self._port = port
        self._client = client
        self._embedding_function = embedding_function
        self._col: Any = None
        self._lock = threading.Lock()

    # ------------------------------------------------------------------ #
    # Public API
    # ------------------------------------------------------------------ #
    def add(
        self,
        workspace_id: str,
        category: str,
        text: str,
        value: Dict[str, Any] | None = None,
        doc_id: str | None = None,
    ) -> str:
        """Add or upsert a single item and return its id."""
        doc_id = doc_id or str(uuid.uuid4())
        self._collection().upsert(
            ids=[doc_id],
            documents=[text],
            metadatas=[
                {
                    "workspace_id": workspace_id,
                    "category": category,
                    "value": json.dumps(value or {}),
                }
            ],
        )
        return doc_id

    async def search(
        self, workspace_id: str, query: str, limit: int = 5, category: str | None = None
    ) -> SearchResult:
        started = time.perf_counter()
        items = await asyncio.to_thread(self._search_sync, workspace_id, query, limit, category)
        elapsed_ms = (time.perf_counter() - started) * 1000
        logger.debug(
            "Knowledge search ws=%s category=%s query=%r -> %d items",
            workspace_id,
            category,
            query,
            len(items),
        )
        return SearchResult(items=items, total_found=len(items), search_time_ms=elapsed_ms)

    # ------------------------------------------------------------------ #
    # Internals
    # ------------------------------------------------------------------ #
    def _collection(self) -> Any:
        """Connect on first use; a failed attempt is retried on the next call."""
        with self._lock:
            if self._col is None:
                self._col = self._connect()
            return self._col

    def _connect(self) -> Any:
        client = self._client
        if client is None:
            # Lazy import - keeps chromadb out of the import path of the rest of the engine
            import chromadb  # pylint: disable=import-outside-toplevel

            client = chromadb.HttpClient(host=self._host, port=self._port)
        embed_fn = self._embedding_function
        if embed_fn is None:
            from chromadb.utils import (  # pylint: disable=import-outside-toplevel
                embedding_functions,
            )

            embed_fn = embedding_functions.SentenceTransformerEmbeddingFunction(
                model_name=_DEFAULT_EMBED_MODEL
            )
        col = client.get_or_create_collection(
            name=self._collection_name, embedding_function=embed_fn
        )
        self._client = client
        logger.info("Connected to knowledge collection '%s'", self._collection_name)
        return col

    @staticmethod
    def _where(workspace_id: str, category: str | None) -> Dict[str, Any]:
        if category is None:
            return {"workspace_id": workspace_id}
        return {"$and": [{"workspace_id": workspace_id}, {"category": category}]}

    def _search_sync(
        self, workspace_id: str, query: str, limit: int, category: str | None
    ) -> List[KnowledgeItem]:
        where = self._where(workspace_id, category)
        if not query.strip():
            res = self._collection().get(
                where=where, limit=limit, include=["documents", "metadatas"]
            )
            return [
                self._to_item(doc_id, doc, meta, None)
                for doc_id, doc, meta in zip(res["ids"], res["documents"], res["metadatas"])
            ]

        res = self._collection().query(
            query_texts=[query],
            n_results=limit,
            where=where,
            include=["documents", "metadatas", "distances"],
        )
        if not res or not res.get("ids") or not res["ids"][0]:
            return []
        distances = (res.get("distances") or [[None] * len(res["ids"][0])])[0]
        return [
            self._to_item(doc_id, doc, meta, dist)
            for doc_id, doc, meta, dist in zip(
                res["ids"][0], res["documents"][0], res["metadatas"][0], distances
            )
        ]

    @staticmethod
    def _to_item(
        doc_id: str, doc: str | None, meta: Dict[str, Any] | None, distance: float | None
    ) -> KnowledgeItem:
        meta = meta or {}
        try:
            value = json.loads(meta.get("value") or "{}")
        except json.JSONDecodeError:
            value = {}
        return KnowledgeItem(
            id=doc_id,
            content=doc or "",
            category=meta.get("category"),
            value=value,
            score=None if distance is None else 1.0 - float(distance),
        )


# ---------------------------------------------------------------------------
# Grounding context
# ---------------------------------------------------------------------------
_CONTEXT_SECTIONS = (
    ("product", 3, "=== PRODUTOS RELEVANTES ==="),
    ("script", 2, "=== SCRIPTS DE VENDA ==="),
    ("objection", 2, "=== RESPOSTAS A OBJEÇÕES ==="),
)


def render_item(item: KnowledgeItem) -> str:
    """Text used for an item inside prompts and skill results."""
    return item.content or json.dumps(item.value, ensure_ascii=False)


async def build_sales_context(knowledge: KnowledgeSearch, workspace_id: str, message: str) -> str:
    """
    Collect products, scripts and objection answers relevant to *message*.

    Returns an empty string when nothing matches.

    Raises
    ------
    ContextLookupError
        If the knowledge store fails for any reason.
    """
    parts: List[str] = []
    try:
        for category, limit, header in _CONTEXT_SECTIONS:
            found = await knowledge.search(workspace_id, message, limit, category)
            if not found.items:
                continue
            if parts:
                parts.append("")
            parts.append(header)
            parts.extend(render_item(item) for item in found.items)
    except Exception as exc:  # noqa: BLE001
        raise ContextLookupError(f"Knowledge search failed: {exc}") from exc
    return "\n".join(parts)
