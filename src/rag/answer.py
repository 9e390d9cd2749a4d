"""
Модуль формирования ответа на вопрос по заметкам.

Отвечает за:
- Сборку промпта из найденного контекста и вопроса
- Однократный вызов модели генерации
"""

from typing import List, TYPE_CHECKING
from dataclasses import dataclass

if TYPE_CHECKING:
    from llm_client import BaseLLMClient
    from .retriever import ScoredEntry


CONTEXT_DELIMITER = "\n---\n"
PROMPT_PREAMBLE = (
    "You are an assistant with access to my notes. "
    "Use the following notes to answer the question."
)


@dataclass
class AnswerResult:
    """Ответ модели и заметки, на которые он опирается."""
    answer_text: str
    cited_entries: List['ScoredEntry']


def build_answer_prompt(question: str, entries: List['ScoredEntry']) -> str:
    """
    Сборка промпта для ответа на вопрос.

    Args:
        question: Вопрос пользователя
        entries: Заметки-контекст в порядке релевантности

    Returns:
        Промпт: вводная инструкция, заметки через разделитель, вопрос

    Формат:
    <вводная>

    Note: path/a.md
    <текст>
    ---
    Note: path/b.md
    <текст>

    Question: <вопрос>
    Answer:
    """
    context = CONTEXT_DELIMITER.join(
        f"Note: {entry.path}\n{entry.content}" for entry in entries
    )
    return f"{PROMPT_PREAMBLE}\n\n{context}\n\nQuestion: {question}\nAnswer:"


class AnswerAssembler:
    """
    Генерация ответа по заметкам.

    Один вызов модели на вопрос, без повторов; ошибки клиента
    пробрасываются без изменений.
    """

    def __init__(self, llm_client: 'BaseLLMClient') -> None:
        self._llm_client = llm_client

    def answer(self, question: str, entries: List['ScoredEntry']) -> AnswerResult:
        prompt = build_answer_prompt(question, entries)
        answer_text = self._llm_client.complete(prompt)
        return AnswerResult(answer_text=answer_text, cited_entries=list(entries))
