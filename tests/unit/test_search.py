"""Unit tests for cosine similarity and ranking."""
import pytest
from pydantic import ValidationError

from docintel.rag.embedder import Embedder
from docintel.rag.errors import EmbeddingDimensionError, EmbeddingUnavailableError
from docintel.rag.models import SearchOptions
from docintel.rag.search import DocumentSearcher, cosine_similarity, resolve_options
from fakes import DIMENSION, RecordingRateLimiter, make_document


class TestCosineSimilarity:

    def test_identical_vectors(self):
        assert cosine_similarity([1.0, 2.0, 3.0], [1.0, 2.0, 3.0]) == pytest.approx(1.0)

    def test_symmetric(self):
        a, b = [0.3, -1.2, 4.0], [2.0, 0.5, -0.1]
        assert cosine_similarity(a, b) == cosine_similarity(b, a)

    def test_orthogonal_and_opposite(self):
        assert cosine_similarity([1.0, 0.0], [0.0, 1.0]) == pytest.approx(0.0)
        assert cosine_similarity([1.0, 1.0], [-1.0, -1.0]) == pytest.approx(-1.0)

    def test_zero_vector_scores_zero(self):
        assert cosine_similarity([0.0, 0.0], [1.0, 2.0]) == 0.0

    def test_length_mismatch_scores_zero(self):
        assert cosine_similarity([1.0, 2.0], [1.0, 2.0, 3.0]) == 0.0

    def test_result_within_bounds(self):
        value = cosine_similarity([1e-8, 3.0, 1e8], [1e-8, 3.0, 1e8])
        assert -1.0 <= value <= 1.0


class TestRank:

    @pytest.fixture
    def searcher(self):
        return DocumentSearcher(Embedder(None, dimension=2, rate_limiter=RecordingRateLimiter()))

    def test_sorted_descending_and_thresholded(self, searcher):
        documents = [
            make_document("a", [[1.0, 0.0], [0.6, 0.8]]),
            make_document("b", [[0.8, 0.6], [0.0, 1.0]]),
        ]

        results = searcher.rank([1.0, 0.0], documents, SearchOptions(top_k=10, min_similarity=0.5))

        scores = [r.similarity for r in results]
        assert scores == sorted(scores, reverse=True)
        assert all(score >= 0.5 for score in scores)
        assert [r.chunk.id for r in results] == ["a_chunk_0", "b_chunk_0", "a_chunk_1"]

    def test_threshold_is_inclusive(self, searcher):
        documents = [make_document("a", [[3.0, 4.0]])]

        results = searcher.rank([1.0, 0.0], documents, SearchOptions(min_similarity=0.6))

        assert len(results) == 1

    def test_top_k_truncates(self, searcher):
        documents = [make_document("a", [[1.0, 0.1 * i] for i in range(8)])]

        results = searcher.rank([1.0, 0.0], documents, SearchOptions(top_k=3, min_similarity=0.0))

        assert len(results) == 3
        assert results[0].chunk.chunk_index == 0

    def test_ties_keep_document_then_chunk_order(self, searcher):
        documents = [
            make_document("a", [[1.0, 0.0], [2.0, 0.0]]),
            make_document("b", [[3.0, 0.0]]),
        ]

        results = searcher.rank([1.0, 0.0], documents, SearchOptions(top_k=5, min_similarity=0.0))

        assert [r.chunk.id for r in results] == ["a_chunk_0", "a_chunk_1", "b_chunk_0"]

    def test_category_filter(self, searcher):
        documents = [
            make_document("fin", [[1.0, 0.0]], category="financial"),
            make_document("hr", [[1.0, 0.0]], category="hr"),
        ]

        results = searcher.rank(
            [1.0, 0.0], documents, SearchOptions(min_similarity=0.0, categories=["hr"])
        )

        assert [r.document.id for r in results] == ["hr"]
        assert results[0].document.category == "hr"

    def test_empty_category_list_matches_nothing(self, searcher):
        documents = [make_document("a", [[1.0, 0.0]])]

        assert searcher.rank([1.0, 0.0], documents, SearchOptions(categories=[])) == []

    def test_dimension_mismatch_raises(self, searcher):
        documents = [make_document("a", [[1.0, 0.0, 0.0]])]

        with pytest.raises(EmbeddingDimensionError):
            searcher.rank([1.0, 0.0], documents, SearchOptions())

    def test_no_documents(self, searcher):
        assert searcher.rank([1.0, 0.0], [], SearchOptions()) == []


class TestOptions:

    @pytest.mark.parametrize("overrides", [
        {"top_k": 0},
        {"top_k": -3},
        {"min_similarity": 1.5},
        {"min_similarity": -0.1},
    ])
    def test_invalid_options_rejected(self, overrides):
        with pytest.raises(ValidationError):
            resolve_options(**overrides)

    def test_defaults(self):
        options = resolve_options()
        assert options.top_k == 5
        assert options.min_similarity == 0.7
        assert options.categories is None

    def test_overrides_merge_into_options(self):
        options = resolve_options(SearchOptions(top_k=2, categories=["hr"]), min_similarity=0.1)

        assert options.top_k == 2
        assert options.min_similarity == 0.1
        assert options.categories == ["hr"]

    def test_none_override_keeps_existing_value(self):
        options = resolve_options(SearchOptions(categories=["hr"]), categories=None, top_k=None)

        assert options.categories == ["hr"]
        assert options.top_k == 5

    def test_camel_case_aliases(self):
        options = SearchOptions.model_validate({"topK": 4, "minSimilarity": 0.2})
        assert (options.top_k, options.min_similarity) == (4, 0.2)


class TestSearch:

    @pytest.mark.asyncio
    async def test_empty_query_returns_nothing(self, embedder, keyword_provider):
        searcher = DocumentSearcher(embedder)

        assert await searcher.search("   ", [make_document("a", [[1.0] * DIMENSION])]) == []
        assert keyword_provider.calls == []

    @pytest.mark.asyncio
    async def test_invalid_options_raise_before_embedding(self, embedder, keyword_provider):
        searcher = DocumentSearcher(embedder)

        with pytest.raises(ValueError):
            await searcher.search("revenue", [], top_k=0)
        assert keyword_provider.calls == []

    @pytest.mark.asyncio
    async def test_fallback_query_is_flagged(self, fallback_embedder):
        searcher = DocumentSearcher(fallback_embedder, strict_query_embeddings=False)
        documents = [make_document("a", [[1.0] * DIMENSION], fallback=True)]

        response = await searcher.search_with_status("revenue", documents, min_similarity=0.0)

        assert response.query_embedding_fallback
        assert response.degraded
        assert response.degraded_document_ids == ["a"]

    @pytest.mark.asyncio
    async def test_strict_mode_refuses_fallback_query(self, fallback_embedder):
        searcher = DocumentSearcher(fallback_embedder, strict_query_embeddings=True)

        with pytest.raises(EmbeddingUnavailableError):
            await searcher.search("revenue", [])

    @pytest.mark.asyncio
    async def test_genuine_search_is_not_degraded(self, embedder):
        searcher = DocumentSearcher(embedder)
        documents = [make_document("a", [[1.0, 1.0, 0, 0, 0, 0, 0, 0]])]

        response = await searcher.search_with_status("revenue growth", documents)

        assert not response.degraded
        assert len(response.results) == 1
        assert response.results[0].similarity == pytest.approx(1.0)

    @pytest.mark.asyncio
    async def test_degraded_document_without_hits_is_flagged(self, embedder):
        searcher = DocumentSearcher(embedder)
        documents = [make_document("b", [[0, 0, 0, 0, 0, 0, 1.0, 0]], fallback=True)]

        response = await searcher.search_with_status(
            "revenue growth", documents, min_similarity=0.5
        )

        assert response.is_empty
        assert response.degraded
        assert response.degraded_document_ids == ["b"]

    @pytest.mark.asyncio
    async def test_degraded_flag_covers_every_searched_document(self, embedder):
        searcher = DocumentSearcher(embedder)
        documents = [
            make_document("a", [[1.0, 1.0, 0, 0, 0, 0, 0, 0]], category="financial"),
            make_document("b", [[0, 0, 0, 0, 0, 0, 1.0, 0]], category="financial", fallback=True),
            make_document("c", [[0, 0, 0, 0, 0, 0, 0, 1.0]], category="hr", fallback=True),
        ]

        response = await searcher.search_with_status(
            "revenue growth", documents, categories=["financial"]
        )

        assert [r.document.id for r in response.results] == ["a"]
        assert response.degraded_document_ids == ["b"]
        assert not response.query_embedding_fallback
