"""
Модуль промптов для LLM.

Содержит:
    - AGENT_PROMPT: Инструкция агента, управляющего файлами хранилища
    - get_agent_prompt(): Промпт для одного хода агента
"""

from .system_prompt import (
    AGENT_PROMPT,
    get_agent_prompt,
)

__all__ = [
    "AGENT_PROMPT",
    "get_agent_prompt",
]
