"""
Тесты для формирования ответа и отчётов.
"""

import unittest
from unittest.mock import Mock
import sys
import os

# Добавляем путь к src для импорта
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from llm_client import LocalLLMConnectionError
from rag.answer import AnswerAssembler, AnswerResult, build_answer_prompt
from rag.indexer import is_reserved_output
from rag.retriever import ScoredEntry
from rag.reports import (
    make_excerpt,
    format_related_notes_report,
    format_answer_report,
    related_notes_filename,
    answer_filename,
)


def make_entry(path, content, score):
    return ScoredEntry(path=path, content=content, embedding=[0.0], score=score)


class TestBuildAnswerPrompt(unittest.TestCase):
    """Тесты сборки промпта."""

    def test_prompt_structure(self):
        entries = [
            make_entry("Music/Jazz.md", "Miles Davis", 0.9),
            make_entry("Music/Blues.md", "B.B. King", 0.7),
        ]

        prompt = build_answer_prompt("Who played trumpet?", entries)

        self.assertTrue(prompt.startswith("You are an assistant with access to my notes."))
        self.assertIn("Note: Music/Jazz.md\nMiles Davis\n---\nNote: Music/Blues.md\nB.B. King", prompt)
        self.assertTrue(prompt.endswith("\n\nQuestion: Who played trumpet?\nAnswer:"))
        self.assertLess(prompt.index("Jazz.md"), prompt.index("Blues.md"))

    def test_full_text_is_included(self):
        long_text = "line\n" * 500
        prompt = build_answer_prompt("q", [make_entry("a.md", long_text, 0.5)])
        self.assertIn(long_text, prompt)


class TestAnswerAssembler(unittest.TestCase):
    """Тесты AnswerAssembler."""

    def test_single_completion_call(self):
        client = Mock()
        client.complete.return_value = "Miles Davis."
        entries = [make_entry("Music/Jazz.md", "Miles Davis", 0.9)]

        result = AnswerAssembler(client).answer("Who?", entries)

        self.assertIsInstance(result, AnswerResult)
        self.assertEqual(result.answer_text, "Miles Davis.")
        self.assertEqual(result.cited_entries, entries)
        client.complete.assert_called_once_with(build_answer_prompt("Who?", entries))

    def test_errors_propagate_without_retry(self):
        client = Mock()
        client.complete.side_effect = LocalLLMConnectionError("down")

        with self.assertRaises(LocalLLMConnectionError):
            AnswerAssembler(client).answer("Who?", [make_entry("a.md", "x", 0.1)])

        self.assertEqual(client.complete.call_count, 1)


class TestReports(unittest.TestCase):
    """Тесты markdown отчётов."""

    def test_excerpt(self):
        text = "first line\nsecond line\n" + "x" * 300
        excerpt = make_excerpt(text)
        self.assertEqual(len(excerpt), 200)
        self.assertNotIn("\n", excerpt)
        self.assertTrue(excerpt.startswith("first line second line "))

    def test_related_notes_report(self):
        entries = [
            make_entry("Music/Jazz.md", "Jazz\nnotes", 0.876),
            make_entry("Ideas.txt", "Some ideas", 0.5),
        ]

        report = format_related_notes_report("music", entries)

        self.assertEqual(
            report,
            "# Top Related Notes for: music\n\n"
            "## 1. [[Music/Jazz]] (Score: 0.88)\n"
            "> Jazz notes...\n\n"
            "## 2. [[Ideas.txt]] (Score: 0.50)\n"
            "> Some ideas...\n\n"
        )

    def test_answer_report(self):
        result = AnswerResult(
            answer_text="Miles Davis played trumpet.",
            cited_entries=[make_entry("Music/Jazz.md", "Miles\nDavis", 0.9)]
        )

        report = format_answer_report("Who played trumpet?", result)

        self.assertEqual(
            report,
            "# AI Answer to: Who played trumpet?\n\n"
            "## Answer\nMiles Davis played trumpet.\n\n"
            "## Top Relevant Notes\n"
            "### 1. Music/Jazz.md (Score: 0.90)\n"
            "> Miles Davis...\n\n"
        )

    def test_filenames(self):
        self.assertEqual(related_notes_filename("music", 123), "Related Notes - music - 123.md")
        self.assertEqual(answer_filename("why?", 456), "AI Answer - why_ - 456.md")

    def test_filenames_are_reserved_and_flat(self):
        """Имена отчётов исключаются из индекса и не создают подпапок."""
        name = related_notes_filename("jazz/blues: best")
        self.assertNotIn("/", name)
        self.assertTrue(is_reserved_output(name))
        self.assertTrue(is_reserved_output(answer_filename("a\\b")))

    def test_default_timestamp_is_milliseconds(self):
        name = answer_filename("question")
        timestamp = name[len("AI Answer - question - "):-len(".md")]
        self.assertTrue(timestamp.isdigit())
        self.assertGreaterEqual(len(timestamp), 13)


if __name__ == "__main__":
    unittest.main(verbosity=2)
