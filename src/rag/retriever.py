"""
Модуль поиска релевантных документов.

Отвечает за:
- Вычисление косинусного сходства
- Ранжирование записей индекса по запросу
- Возврат топ-K релевантных заметок
"""

import logging
from typing import List, Sequence, TYPE_CHECKING
from dataclasses import dataclass

import numpy as np

if TYPE_CHECKING:
    from .embeddings import EmbeddingGenerator
    from .indexer import IndexEntry, VectorIndex


logger = logging.getLogger(__name__)


@dataclass
class ScoredEntry:
    """Запись индекса с оценкой сходства."""
    path: str
    content: str
    embedding: List[float]
    score: float


def cosine_similarity(vec1: Sequence[float], vec2: Sequence[float]) -> float:
    """
    Вычисление косинусного сходства между векторами.

    Args:
        vec1: Первый вектор
        vec2: Второй вектор

    Returns:
        Значение косинусного сходства от -1 до 1; 0.0 если норма
        одного из векторов равна нулю

    Raises:
        DimensionMismatchError: Если длины векторов различаются

    Формула:
    cos(θ) = (A · B) / (||A|| * ||B||)
    """
    vec1_np = np.asarray(vec1, dtype=float)
    vec2_np = np.asarray(vec2, dtype=float)

    if vec1_np.shape != vec2_np.shape:
        raise DimensionMismatchError(
            f"Размерности векторов различаются: {vec1_np.shape} и {vec2_np.shape}"
        )

    dot_product = np.dot(vec1_np, vec2_np)
    norm1 = np.linalg.norm(vec1_np)
    norm2 = np.linalg.norm(vec2_np)

    if norm1 == 0 or norm2 == 0:
        return 0.0

    # Погрешность округления может дать 1.0000000002
    return float(np.clip(dot_product / (norm1 * norm2), -1.0, 1.0))


def rank(query_embedding: Sequence[float],
         entries: Sequence['IndexEntry']) -> List[ScoredEntry]:
    """
    Ранжирование записей по убыванию сходства с запросом.

    Сортировка стабильная: при равных оценках сохраняется исходный
    порядок записей.
    """
    scored = [
        ScoredEntry(
            path=entry.path,
            content=entry.content,
            embedding=entry.embedding,
            score=cosine_similarity(query_embedding, entry.embedding)
        )
        for entry in entries
    ]
    scored.sort(key=lambda x: x.score, reverse=True)
    return scored


class DocumentRetriever:
    """
    Поиск релевантных документов в RAG системе.

    Обеспечивает:
    - Поиск по косинусному сходству в индексе
    - Подбор связанных заметок (топ-10)
    - Подбор контекста для вопроса (топ-3)
    """

    RELATED_TOP_K = 10
    CONTEXT_TOP_K = 3

    def __init__(self, index: 'VectorIndex',
                 embedding_generator: 'EmbeddingGenerator') -> None:
        """
        Инициализация retriever'а.

        Args:
            index: Векторный индекс
            embedding_generator: Генератор эмбедингов для запросов
        """
        self._index = index
        self._embedding_generator = embedding_generator

    def search(self, query: str, top_k: int) -> List[ScoredEntry]:
        """
        Поиск релевантных заметок по запросу.

        Args:
            query: Поисковый запрос
            top_k: Количество результатов

        Returns:
            Список ScoredEntry, отсортированный по релевантности

        Raises:
            IndexEmptyError: Индекс ещё не построен

        Действия:
        - Проверить, что индекс не пуст (до запроса к модели)
        - Преобразовать запрос в эмбединг
        - Отсортировать записи по убыванию сходства
        - Вернуть топ-K результатов
        """
        if self._index.is_empty():
            raise IndexEmptyError('Индекс пуст. Сначала запустите индексацию (/index)')

        query_embedding = self._embedding_generator.generate(query)

        results = rank(query_embedding, self._index.entries())[:top_k]
        logger.debug("Query %r: %d results, top score %s", query, len(results),
                     f"{results[0].score:.4f}" if results else "n/a")
        return results

    def find_related(self, query: str, top_k: int = RELATED_TOP_K) -> List[ScoredEntry]:
        """Заметки, связанные с запросом."""
        return self.search(query, top_k)

    def find_context(self, question: str, top_k: int = CONTEXT_TOP_K) -> List[ScoredEntry]:
        """Контекст для ответа на вопрос (меньше записей, так как они идут в промпт)."""
        return self.search(question, top_k)


class RetrieverError(Exception):
    """Базовый класс ошибок retriever'а."""
    pass


class IndexEmptyError(RetrieverError):
    """Индекс пуст."""
    pass


class DimensionMismatchError(RetrieverError):
    """Векторы разной размерности."""
    pass
