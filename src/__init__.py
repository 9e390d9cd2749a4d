"""
Notes Assistant - локальный RAG по личным заметкам.

Модули:
    - main: Точка входа и консольный интерфейс
    - llm_client: Клиент генерации текста (Ollama)
    - action_handler: Агент, выполняющий действия над файлами и папками
    - document_store: Хранилище заметок
    - rag: Подмодуль для RAG функциональности
    - prompts: Промпт агента
"""

__version__ = "1.0.0"
__author__ = "Notes Assistant Team"
