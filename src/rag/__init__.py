"""
RAG (Retrieval-Augmented Generation) модуль.

Компоненты:
    - embeddings: Генерация эмбедингов через локальную LLM
    - indexer: Векторный индекс заметок в памяти
    - retriever: Поиск релевантных заметок по косинусному сходству
    - answer: Ответ на вопрос по найденным заметкам
    - reports: Markdown отчёты и их имена
"""

from .embeddings import EmbeddingConfig, EmbeddingGenerator
from .indexer import VectorIndex, IndexEntry, IndexingResult
from .retriever import DocumentRetriever, ScoredEntry
from .answer import AnswerAssembler, AnswerResult

__all__ = [
    "EmbeddingConfig",
    "EmbeddingGenerator",
    "VectorIndex",
    "IndexEntry",
    "IndexingResult",
    "DocumentRetriever",
    "ScoredEntry",
    "AnswerAssembler",
    "AnswerResult",
]
