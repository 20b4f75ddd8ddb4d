"""Tests for embedding reuse and refresh."""

import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from ...errors import EmbeddingUnavailable
from ...models import Post
from ..embeddings import EmbeddingProvider
from .refresh import EmbeddingRefresher, is_embedding_current

MODEL = "test-model"
NOW = datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------

class FakeProvider(EmbeddingProvider):
    """Maps post text to a vector; texts listed in ``failing`` raise."""

    def __init__(self, vectors: dict[str, list[float]] | None = None, failing=(), delays=None):
        self.vectors = vectors or {}
        self.failing = set(failing)
        self.delays = delays or {}
        self.calls: list[str] = []

    @property
    def model_name(self) -> str:
        return MODEL

    async def embed(self, text: str) -> list[float]:
        self.calls.append(text)
        await asyncio.sleep(self.delays.get(text, 0))
        if text in self.failing:
            raise EmbeddingUnavailable("model offline")
        return self.vectors.get(text, [1.0, 0.0])


class FakeStore:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.saved: list[dict] = []

    async def save_embedding(self, post_id, embedding, model_name, updated_at):
        if self.fail:
            raise ConnectionError("es down")
        self.saved.append({
            "post_id": post_id,
            "embedding": embedding,
            "model_name": model_name,
            "updated_at": updated_at,
        })


def make_post(post_id: str, text: str = "some text", **kwargs) -> Post:
    return Post(id=post_id, text=text, **kwargs)


def current_post(post_id: str, text: str = "cached text", vector=None) -> Post:
    return make_post(
        post_id,
        text,
        embedding=vector or [0.5, 0.5],
        embedding_model=MODEL,
        embedding_updated_at=NOW,
        updated_at=NOW - timedelta(minutes=5),
    )


# ---------------------------------------------------------------------------
# is_embedding_current
# ---------------------------------------------------------------------------

class TestIsEmbeddingCurrent:
    def test_current(self):
        assert is_embedding_current(current_post("1"), MODEL)

    def test_same_timestamp_is_current(self):
        post = make_post(
            "1", embedding=[1.0], embedding_model=MODEL,
            embedding_updated_at=NOW, updated_at=NOW,
        )
        assert is_embedding_current(post, MODEL)

    def test_missing_embedding(self):
        assert not is_embedding_current(make_post("1"), MODEL)

    def test_empty_embedding(self):
        post = make_post("1", embedding=[], embedding_model=MODEL, embedding_updated_at=NOW)
        assert not is_embedding_current(post, MODEL)

    def test_other_model(self):
        assert not is_embedding_current(current_post("1"), "another-model")

    def test_edited_after_embedding(self):
        post = make_post(
            "1", embedding=[1.0], embedding_model=MODEL,
            embedding_updated_at=NOW, updated_at=NOW + timedelta(seconds=1),
        )
        assert not is_embedding_current(post, MODEL)

    def test_missing_embedding_timestamp(self):
        post = make_post("1", embedding=[1.0], embedding_model=MODEL, updated_at=NOW)
        assert not is_embedding_current(post, MODEL)

    def test_naive_timestamps_are_utc(self):
        post = make_post(
            "1", embedding=[1.0], embedding_model=MODEL,
            embedding_updated_at=datetime(2025, 1, 1, 12, 0),
            updated_at=NOW - timedelta(hours=1),
        )
        assert is_embedding_current(post, MODEL)


# ---------------------------------------------------------------------------
# EmbeddingRefresher
# ---------------------------------------------------------------------------

class TestResolve:
    @pytest.mark.asyncio
    async def test_reuses_current_embedding_without_provider_call(self):
        provider = FakeProvider()
        store = FakeStore()
        refresher = EmbeddingRefresher(provider, store)

        resolved = await refresher.resolve([current_post("1", vector=[0.2, 0.8])])
        await refresher.drain()

        assert [(p.id, v) for p, v in resolved] == [("1", [0.2, 0.8])]
        assert provider.calls == []
        assert store.saved == []

    @pytest.mark.asyncio
    async def test_stale_post_is_embedded_and_written_back(self):
        provider = FakeProvider(vectors={"fresh text": [0.0, 1.0]})
        store = FakeStore()
        refresher = EmbeddingRefresher(provider, store)

        stale = make_post(
            "1", "fresh text", embedding=[1.0, 0.0], embedding_model="old-model",
            embedding_updated_at=NOW,
        )
        resolved = await refresher.resolve([stale])
        await refresher.drain()

        assert [(p.id, v) for p, v in resolved] == [("1", [0.0, 1.0])]
        assert provider.calls == ["fresh text"]
        assert len(store.saved) == 1
        saved = store.saved[0]
        assert saved["post_id"] == "1"
        assert saved["embedding"] == [0.0, 1.0]
        assert saved["model_name"] == MODEL
        assert saved["updated_at"].tzinfo is not None

    @pytest.mark.asyncio
    async def test_failed_embedding_drops_candidate(self):
        provider = FakeProvider(failing={"broken"})
        refresher = EmbeddingRefresher(provider, FakeStore())

        posts = [make_post("1", "fine"), make_post("2", "broken"), make_post("3", "also fine")]
        resolved = await refresher.resolve(posts)

        assert [p.id for p, _ in resolved] == ["1", "3"]
        assert refresher.failed_embeddings == 1

    @pytest.mark.asyncio
    async def test_failed_write_back_keeps_vector(self):
        provider = FakeProvider(vectors={"text": [0.3, 0.4]})
        store = FakeStore(fail=True)
        refresher = EmbeddingRefresher(provider, store)

        resolved = await refresher.resolve([make_post("1", "text")])
        await refresher.drain()

        assert [(p.id, v) for p, v in resolved] == [("1", [0.3, 0.4])]
        assert refresher.failed_writes == 1

    @pytest.mark.asyncio
    async def test_blank_posts_are_skipped(self):
        provider = FakeProvider()
        refresher = EmbeddingRefresher(provider, FakeStore())

        resolved = await refresher.resolve([make_post("1", "   "), make_post("2", "")])

        assert resolved == []
        assert provider.calls == []

    @pytest.mark.asyncio
    async def test_preserves_order_when_embeddings_finish_out_of_order(self):
        provider = FakeProvider(delays={"slow": 0.05, "medium": 0.02, "fast": 0})
        refresher = EmbeddingRefresher(provider, FakeStore(), concurrency=3)

        posts = [
            make_post("a", "slow"),
            current_post("b"),
            make_post("c", "medium"),
            make_post("d", "fast"),
        ]
        resolved = await refresher.resolve(posts)
        await refresher.drain()

        assert [p.id for p, _ in resolved] == ["a", "b", "c", "d"]

    @pytest.mark.asyncio
    async def test_concurrency_is_bounded(self):
        in_flight = 0
        peak = 0

        class CountingProvider(FakeProvider):
            async def embed(self, text):
                nonlocal in_flight, peak
                in_flight += 1
                peak = max(peak, in_flight)
                await asyncio.sleep(0.01)
                in_flight -= 1
                return [1.0, 0.0]

        refresher = EmbeddingRefresher(CountingProvider(), FakeStore(), concurrency=2)
        resolved = await refresher.resolve([make_post(str(i), f"text {i}") for i in range(6)])
        await refresher.drain()

        assert len(resolved) == 6
        assert peak <= 2
