"""
Модуль индексации документов.

Отвечает за:
- Построение векторного индекса заметок в памяти
- Исключение собственных выходных файлов и слишком коротких заметок
- Полную пересборку индекса с атомарной заменой
"""

import os
import logging
from datetime import datetime
from typing import List, Iterable, Optional, TYPE_CHECKING
from dataclasses import dataclass, field

from .embeddings import EmbeddingError

if TYPE_CHECKING:
    from document_store import Document
    from .embeddings import EmbeddingGenerator


logger = logging.getLogger(__name__)

# Префиксы файлов, которые создаёт сам ассистент
RELATED_NOTES_PREFIX = "Related Notes - "
AI_ANSWER_PREFIX = "AI Answer - "
RESERVED_PREFIXES = (RELATED_NOTES_PREFIX, AI_ANSWER_PREFIX)


@dataclass
class IndexEntry:
    """Запись индекса."""
    path: str
    content: str
    embedding: List[float]


@dataclass
class IndexingResult:
    """Результат индексации."""
    total_documents: int = 0
    indexed: int = 0
    skipped: int = 0
    failed: int = 0
    indexed_paths: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)


def is_reserved_output(path: str) -> bool:
    """
    Проверка, является ли файл отчётом ассистента.

    Args:
        path: Путь документа

    Returns:
        True если имя файла начинается с зарезервированного префикса
    """
    filename = os.path.basename(path.replace('\\', '/').rstrip('/'))
    return filename.startswith(RESERVED_PREFIXES)


class VectorIndex:
    """
    Векторный индекс заметок в памяти.

    Обеспечивает:
    - Полную пересборку по коллекции документов
    - Доступ к записям в порядке добавления

    Индекс меняется только через rebuild(); новая версия собирается
    отдельно и подменяет старую целиком в конце.
    """

    DEFAULT_MIN_CONTENT_LENGTH = 50

    def __init__(self, embedding_generator: 'EmbeddingGenerator',
                 min_content_length: int = DEFAULT_MIN_CONTENT_LENGTH) -> None:
        """
        Инициализация пустого индекса.

        Args:
            embedding_generator: Генератор эмбедингов
            min_content_length: Минимальная длина заметки в символах
        """
        self._embedding_generator = embedding_generator
        self._min_content_length = min_content_length
        self._entries: List[IndexEntry] = []
        self._indexed_at: Optional[datetime] = None
        self._rebuilding = False

    def rebuild(self, documents: Iterable['Document']) -> IndexingResult:
        """
        Полная пересборка индекса.

        Args:
            documents: Документы хранилища

        Returns:
            Статистика индексации

        Действия:
        - Для каждого документа:
          - Пропустить отчёты ассистента и короткие заметки
          - Сгенерировать эмбединг
          - При ошибке записать её и перейти к следующему
        - Заменить прежний индекс новым
        """
        new_entries: List[IndexEntry] = []
        result = IndexingResult()
        dimension: Optional[int] = None

        self._rebuilding = True
        try:
            for document in documents:
                result.total_documents += 1

                if is_reserved_output(document.path):
                    logger.debug("Skipping generated output %s", document.path)
                    result.skipped += 1
                    continue

                content = document.content or ""
                if len(content) < self._min_content_length:
                    logger.debug("Skipping short document %s (%d chars)", document.path, len(content))
                    result.skipped += 1
                    continue

                try:
                    embedding = self._embedding_generator.generate(content)
                except EmbeddingError as e:
                    logger.warning("Embedding failed for %s: %s", document.path, e)
                    result.failed += 1
                    result.errors.append(f"{document.path}: {e}")
                    continue

                # Все записи одного поколения индекса имеют одну размерность
                if dimension is None:
                    dimension = len(embedding)
                elif len(embedding) != dimension:
                    logger.warning("Embedding for %s has dimension %d, expected %d",
                                   document.path, len(embedding), dimension)
                    result.failed += 1
                    result.errors.append(
                        f"{document.path}: размерность {len(embedding)} вместо {dimension}"
                    )
                    continue

                new_entries.append(IndexEntry(
                    path=document.path,
                    content=content,
                    embedding=embedding
                ))
                result.indexed_paths.append(document.path)
        finally:
            self._rebuilding = False

        self._entries = new_entries
        self._indexed_at = datetime.now()
        result.indexed = len(new_entries)

        logger.info("Index rebuilt: %d indexed, %d skipped, %d failed",
                    result.indexed, result.skipped, result.failed)
        return result

    def entries(self) -> List[IndexEntry]:
        """Копия списка записей в порядке добавления."""
        return list(self._entries)

    def is_empty(self) -> bool:
        return not self._entries

    @property
    def is_rebuilding(self) -> bool:
        return self._rebuilding

    @property
    def indexed_at(self) -> Optional[datetime]:
        return self._indexed_at

    @property
    def dimension(self) -> Optional[int]:
        if not self._entries:
            return None
        return len(self._entries[0].embedding)

    def __len__(self) -> int:
        return len(self._entries)
