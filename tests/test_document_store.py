"""
Тесты для хранилища заметок.
"""

import unittest
import tempfile
import shutil
import sys
import os

# Добавляем путь к src для импорта
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from document_store import (
    FileSystemDocumentStore,
    Document,
    EntityKind,
    DocumentStoreError,
    DocumentPathError,
    DocumentExistsError,
)


class TestFileSystemDocumentStore(unittest.TestCase):
    """Тесты FileSystemDocumentStore."""

    def setUp(self):
        """Создание временной директории с тестовыми файлами."""
        self.temp_dir = tempfile.mkdtemp()
        self.vault_dir = os.path.join(self.temp_dir, "vault")
        self.store = FileSystemDocumentStore(self.vault_dir)

    def tearDown(self):
        """Удаление временной директории."""
        shutil.rmtree(self.temp_dir)

    def _create_file(self, rel_path, content):
        full_path = os.path.join(self.vault_dir, rel_path)
        os.makedirs(os.path.dirname(full_path), exist_ok=True)
        with open(full_path, 'w', encoding='utf-8') as f:
            f.write(content)

    def test_init_creates_root(self):
        self.assertTrue(os.path.isdir(self.vault_dir))
        self.assertEqual(self.store.root_dir, os.path.abspath(self.vault_dir))

    def test_list_documents(self):
        """Сканируются .md и .txt, пути относительные и отсортированы."""
        self._create_file("b.md", "# B")
        self._create_file("Music/Jazz.md", "# Jazz")
        self._create_file("a.txt", "A text")
        self._create_file("upper.MD", "# Upper")
        self._create_file("image.png", "binary")
        self._create_file(".obsidian/workspace.md", "hidden")

        documents = self.store.list_documents()

        self.assertEqual(
            [d.path for d in documents],
            ["Music/Jazz.md", "a.txt", "b.md", "upper.MD"]
        )
        self.assertIsInstance(documents[0], Document)
        self.assertEqual(documents[0].content, "# Jazz")

    def test_read_latin1_fallback(self):
        full_path = os.path.join(self.vault_dir, "legacy.md")
        with open(full_path, 'wb') as f:
            f.write("café".encode('latin-1'))

        self.assertEqual(self.store.read("legacy.md"), "café")

    def test_entity_kind(self):
        self._create_file("Music/Jazz.md", "# Jazz")

        self.assertIs(self.store.entity_kind("Music"), EntityKind.FOLDER)
        self.assertIs(self.store.entity_kind("Music/Jazz.md"), EntityKind.FILE)
        self.assertIsNone(self.store.entity_kind("Music/Rock.md"))

    def test_create_and_update_file(self):
        self.store.create_file("Music/X/note.md", "hello")
        self.assertEqual(self.store.read("Music/X/note.md"), "hello")

        self.store.update_file("Music/X/note.md", "updated")
        self.assertEqual(self.store.read("Music/X/note.md"), "updated")

    def test_create_existing_raises(self):
        self.store.create_folder("Music")
        with self.assertRaises(DocumentExistsError):
            self.store.create_folder("Music")

        self.store.create_file("a.md", "x")
        with self.assertRaises(DocumentExistsError):
            self.store.create_file("a.md", "y")
        self.assertEqual(self.store.read("a.md"), "x")

    def test_delete_file_and_folder(self):
        self._create_file("Music/X/a.md", "a")
        self._create_file("Music/X/sub/b.md", "b")

        self.store.delete_file("Music/X/a.md")
        self.assertIsNone(self.store.entity_kind("Music/X/a.md"))

        self.store.delete_folder("Music/X")
        self.assertIsNone(self.store.entity_kind("Music/X"))
        self.assertIs(self.store.entity_kind("Music"), EntityKind.FOLDER)

    def test_delete_wrong_kind_raises(self):
        self._create_file("Music/a.md", "a")
        with self.assertRaises(FileNotFoundError):
            self.store.delete_file("Music")
        with self.assertRaises(FileNotFoundError):
            self.store.delete_folder("Music/a.md")

    def test_paths_outside_root_rejected(self):
        for path in ("../escape.md", "Music/../../escape.md", "", "   "):
            with self.subTest(path=path):
                with self.assertRaises(DocumentPathError):
                    self.store.create_file(path, "x")
        self.assertFalse(os.path.exists(os.path.join(self.temp_dir, "escape.md")))
        self.assertTrue(issubclass(DocumentPathError, DocumentStoreError))

    def test_root_cannot_be_deleted(self):
        with self.assertRaises(DocumentPathError):
            self.store.delete_folder("/")
        self.assertIsNone(self.store.entity_kind("."))


if __name__ == "__main__":
    unittest.main(verbosity=2)
