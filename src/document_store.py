"""
Хранилище заметок (vault).

Обеспечивает перечисление документов и операции над файлами и папками
по относительному пути. Ядро RAG и агент работают только через
интерфейс BaseDocumentStore.
"""

import os
import shutil
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional


logger = logging.getLogger(__name__)


@dataclass
class Document:
    """Документ хранилища."""
    path: str  # Путь относительно корня хранилища, через '/'
    content: str


class EntityKind(Enum):
    """Тип сущности по пути."""
    FILE = "file"
    FOLDER = "folder"


class BaseDocumentStore(ABC):
    """
    Базовый интерфейс хранилища документов.
    """

    @abstractmethod
    def list_documents(self) -> List[Document]:
        """Все документы хранилища в стабильном порядке."""
        pass

    @abstractmethod
    def read(self, path: str) -> str:
        pass

    @abstractmethod
    def entity_kind(self, path: str) -> Optional[EntityKind]:
        """Тип сущности по пути или None, если пути нет."""
        pass

    @abstractmethod
    def create_file(self, path: str, content: str = "") -> None:
        pass

    @abstractmethod
    def create_folder(self, path: str) -> None:
        pass

    @abstractmethod
    def update_file(self, path: str, content: str) -> None:
        pass

    @abstractmethod
    def delete_file(self, path: str) -> None:
        pass

    @abstractmethod
    def delete_folder(self, path: str) -> None:
        """Рекурсивное удаление папки."""
        pass


class FileSystemDocumentStore(BaseDocumentStore):
    """
    Хранилище заметок в директории файловой системы.

    Обеспечивает:
    - Рекурсивное сканирование файлов .md и .txt
    - Чтение с откатом на latin-1 при ошибке кодировки
    - Создание, изменение и удаление файлов и папок внутри корня
    """

    SUPPORTED_EXTENSIONS = [".md", ".txt"]

    def __init__(self, root_dir: str) -> None:
        """
        Args:
            root_dir: Корневая директория хранилища (создаётся при отсутствии)
        """
        self._root_dir = os.path.abspath(root_dir)
        if not os.path.exists(self._root_dir):
            os.makedirs(self._root_dir)

    @property
    def root_dir(self) -> str:
        return self._root_dir

    def list_documents(self) -> List[Document]:
        """
        Сканирование хранилища на наличие документов.

        Returns:
            Список документов, отсортированный по пути

        Действия:
        - Рекурсивно обойти корневую директорию
        - Отфильтровать файлы по расширению
        - Прочитать содержимое каждого файла
        """
        found_paths: List[str] = []

        for root, dirs, files in os.walk(self._root_dir):
            # Скрытые служебные папки (.obsidian, .git) не индексируем
            dirs[:] = [d for d in dirs if not d.startswith('.')]
            for filename in files:
                ext = os.path.splitext(filename)[1].lower()
                if ext in self.SUPPORTED_EXTENSIONS:
                    full_path = os.path.join(root, filename)
                    rel_path = os.path.relpath(full_path, self._root_dir)
                    found_paths.append(rel_path.replace(os.sep, '/'))

        found_paths.sort()

        documents: List[Document] = []
        for path in found_paths:
            try:
                documents.append(Document(path=path, content=self.read(path)))
            except OSError as e:
                logger.warning("Cannot read %s: %s", path, e)
        return documents

    def read(self, path: str) -> str:
        """
        Чтение содержимого документа.

        Raises:
            FileNotFoundError: Если файл не найден
        """
        full_path = self._resolve(path)
        try:
            with open(full_path, 'r', encoding='utf-8') as f:
                return f.read()
        except UnicodeDecodeError:
            with open(full_path, 'r', encoding='latin-1') as f:
                return f.read()

    def entity_kind(self, path: str) -> Optional[EntityKind]:
        full_path = self._resolve(path)
        if os.path.isfile(full_path):
            return EntityKind.FILE
        if os.path.isdir(full_path) and full_path != self._root_dir:
            return EntityKind.FOLDER
        return None

    def create_file(self, path: str, content: str = "") -> None:
        full_path = self._resolve(path)
        if os.path.exists(full_path):
            raise DocumentExistsError(f"Уже существует: {path}")

        dir_path = os.path.dirname(full_path)
        os.makedirs(dir_path, exist_ok=True)
        with open(full_path, 'w', encoding='utf-8') as f:
            f.write(content)

    def create_folder(self, path: str) -> None:
        full_path = self._resolve(path)
        if os.path.exists(full_path):
            raise DocumentExistsError(f"Уже существует: {path}")
        os.makedirs(full_path)

    def update_file(self, path: str, content: str) -> None:
        full_path = self._resolve(path)
        if not os.path.isfile(full_path):
            raise FileNotFoundError(f"Файл не найден: {path}")
        with open(full_path, 'w', encoding='utf-8') as f:
            f.write(content)

    def delete_file(self, path: str) -> None:
        full_path = self._resolve(path)
        if not os.path.isfile(full_path):
            raise FileNotFoundError(f"Файл не найден: {path}")
        os.remove(full_path)

    def delete_folder(self, path: str) -> None:
        full_path = self._resolve(path)
        if full_path == self._root_dir:
            raise DocumentPathError("Нельзя удалить корень хранилища")
        if not os.path.isdir(full_path):
            raise FileNotFoundError(f"Папка не найдена: {path}")
        shutil.rmtree(full_path)

    def _resolve(self, path: str) -> str:
        """
        Преобразование относительного пути в абсолютный внутри корня.

        Raises:
            DocumentPathError: Путь пустой или выходит за пределы хранилища
        """
        if not isinstance(path, str) or not path.strip():
            raise DocumentPathError("Пустой путь")

        relative = path.strip().replace('\\', '/').lstrip('/')
        full_path = os.path.abspath(os.path.join(self._root_dir, relative))
        if full_path != self._root_dir and not full_path.startswith(self._root_dir + os.sep):
            raise DocumentPathError(f"Путь выходит за пределы хранилища: {path}")
        return full_path


class DocumentStoreError(Exception):
    """Базовый класс ошибок хранилища."""
    pass


class DocumentPathError(DocumentStoreError):
    """Недопустимый путь."""
    pass


class DocumentExistsError(DocumentStoreError):
    """Файл или папка уже существует."""
    pass
