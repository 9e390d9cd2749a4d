"""
Форматирование отчётов для сохранения в хранилище.

Отчёты пишутся в markdown; их имена начинаются с зарезервированных
префиксов, поэтому индексатор их пропускает.
"""

import re
import time
from typing import List, Optional, TYPE_CHECKING

from .indexer import RELATED_NOTES_PREFIX, AI_ANSWER_PREFIX

if TYPE_CHECKING:
    from .answer import AnswerResult
    from .retriever import ScoredEntry


EXCERPT_LENGTH = 200

# Символы, недопустимые в имени файла
_UNSAFE_FILENAME_CHARS = re.compile(r'[\\/:*?"<>|\r\n\t]')


def make_excerpt(text: str, length: int = EXCERPT_LENGTH) -> str:
    """Первые length символов текста, переводы строк заменены пробелами."""
    return text[:length].replace("\n", " ")


def format_related_notes_report(query: str, entries: List['ScoredEntry']) -> str:
    """
    Отчёт со связанными заметками.

    Формат:
    # Top Related Notes for: <запрос>

    ## 1. [[Folder/Note]] (Score: 0.87)
    > <фрагмент>...
    """
    output = f"# Top Related Notes for: {query}\n\n"
    for i, entry in enumerate(entries, 1):
        link = re.sub(r'\.md$', '', entry.path)
        output += f"## {i}. [[{link}]] (Score: {entry.score:.2f})\n"
        output += f"> {make_excerpt(entry.content)}...\n\n"
    return output


def format_answer_report(question: str, result: 'AnswerResult') -> str:
    """
    Отчёт с ответом модели и заметками, на которых он основан.

    Формат:
    # AI Answer to: <вопрос>

    ## Answer
    <ответ>

    ## Top Relevant Notes
    ### 1. Folder/Note.md (Score: 0.87)
    > <фрагмент>...
    """
    output = f"# AI Answer to: {question}\n\n"
    output += f"## Answer\n{result.answer_text}\n\n"
    output += "## Top Relevant Notes\n"
    for i, entry in enumerate(result.cited_entries, 1):
        output += f"### {i}. {entry.path} (Score: {entry.score:.2f})\n"
        output += f"> {make_excerpt(entry.content)}...\n\n"
    return output


def related_notes_filename(query: str, timestamp: Optional[int] = None) -> str:
    return _output_filename(RELATED_NOTES_PREFIX, query, timestamp)


def answer_filename(question: str, timestamp: Optional[int] = None) -> str:
    return _output_filename(AI_ANSWER_PREFIX, question, timestamp)


def _output_filename(prefix: str, text: str, timestamp: Optional[int]) -> str:
    """Имя отчёта: '<префикс><текст> - <мс с эпохи>.md' в корне хранилища."""
    if timestamp is None:
        timestamp = int(time.time() * 1000)
    safe_text = _UNSAFE_FILENAME_CHARS.sub("_", text.strip())
    return f"{prefix}{safe_text} - {timestamp}.md"
