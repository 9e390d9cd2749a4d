"""
Примеры использования компонентов Notes Assistant.

Демонстрирует работу с локальными моделями через Ollama:
эмбединги, генерацию, поиск по заметкам и агента.
"""

import sys
import os
import tempfile

# Добавляем путь к src
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from llm_client import LocalLLMClient, CompletionConfig, LLMError
from document_store import FileSystemDocumentStore, Document
from action_handler import ActionExecutor, AgentSession
from rag import (
    EmbeddingConfig,
    EmbeddingGenerator,
    VectorIndex,
    DocumentRetriever,
    AnswerAssembler,
)
from rag.embeddings import EmbeddingError


SAMPLE_NOTES = [
    Document(path="Music/Jazz.md",
             content="Miles Davis recorded Kind of Blue in 1959 with John Coltrane and Bill Evans."),
    Document(path="Cooking/Pasta.md",
             content="Carbonara needs guanciale, pecorino romano, eggs and plenty of black pepper."),
    Document(path="Travel/Japan.md",
             content="Kyoto temples are best visited early in the morning before the tour buses arrive."),
]


def example_embedding():
    """Пример получения эмбединга."""
    print("=" * 60)
    print("Пример 1: Эмбединг текста (nomic-embed-text)")
    print("=" * 60)

    generator = EmbeddingGenerator(EmbeddingConfig())

    if not generator.check_model_availability():
        print("❌ Модель эмбедингов недоступна!")
        print("  ollama pull nomic-embed-text")
        return

    try:
        embedding = generator.generate("Miles Davis played trumpet")
        print(f"\nРазмерность: {len(embedding)}")
        print(f"Первые значения: {embedding[:5]}")
    except EmbeddingError as e:
        print(f"Ошибка: {e}")


def example_completion():
    """Пример потоковой генерации."""
    print("=" * 60)
    print("Пример 2: Генерация (llama3, stream)")
    print("=" * 60)

    client = LocalLLMClient(CompletionConfig(stream=True))

    if not client.check_model_availability():
        print("❌ Модель недоступна!")
        print("  ollama pull llama3")
        return

    try:
        print("Отправка запроса (может занять 10-30 секунд)...")
        response = client.complete("Explain retrieval augmented generation in two sentences.")
        print(f"\nОтвет: {response}\n")
    except LLMError as e:
        print(f"Ошибка: {e}")


def example_search():
    """Пример индексации и поиска по заметкам в памяти."""
    print("=" * 60)
    print("Пример 3: Индекс и поиск")
    print("=" * 60)

    generator = EmbeddingGenerator(EmbeddingConfig())
    index = VectorIndex(generator)

    result = index.rebuild(SAMPLE_NOTES)
    print(f"Проиндексировано: {result.indexed}, ошибок: {result.failed}")
    if index.is_empty():
        return

    retriever = DocumentRetriever(index, generator)
    try:
        for entry in retriever.find_related("italian food", top_k=3):
            print(f"  {entry.score:.2f}  {entry.path}")

        context = retriever.find_context("Who played with Miles Davis?")
        answer = AnswerAssembler(LocalLLMClient(CompletionConfig())).answer(
            "Who played with Miles Davis?", context
        )
        print(f"\n🤖 {answer.answer_text}")
    except (EmbeddingError, LLMError) as e:
        print(f"❌ Ошибка: {e}")


def example_agent():
    """Пример диалога с агентом во временном хранилище."""
    print("=" * 60)
    print("Пример 4: Агент")
    print("=" * 60)

    with tempfile.TemporaryDirectory() as temp_dir:
        store = FileSystemDocumentStore(temp_dir)
        session = AgentSession(LocalLLMClient(CompletionConfig()), ActionExecutor(store))

        for msg in ["Create a folder Music/Jazz with a note about Miles Davis", "Thanks!"]:
            print(f"\n👤 User: {msg}")
            try:
                reply = session.send_message(msg)
                print(f"🤖 Assistant: {reply.content}")
            except LLMError as e:
                print(f"❌ Ошибка: {e}")
                break

        print(f"\n📁 Файлы в хранилище: {[d.path for d in store.list_documents()]}")
        session.close()


def main():
    """Главная функция с меню."""
    print("\n" + "=" * 60)
    print("ПРИМЕРЫ ИСПОЛЬЗОВАНИЯ NOTES ASSISTANT")
    print("=" * 60)

    examples = {
        "1": ("Эмбединг", example_embedding),
        "2": ("Генерация", example_completion),
        "3": ("Индекс и поиск", example_search),
        "4": ("Агент", example_agent),
    }

    print("\nВыберите пример:")
    for key, (name, _) in examples.items():
        print(f"  {key}. {name}")
    print("  0. Запустить все примеры")
    print("  q. Выход")

    choice = input("\nВаш выбор: ").strip()

    if choice == "q":
        print("До свидания!")
        return

    if choice == "0":
        for name, func in examples.values():
            print("\n")
            func()
            input("\nНажмите Enter для продолжения...")
    elif choice in examples:
        examples[choice][1]()
    else:
        print("Неверный выбор!")


if __name__ == "__main__":
    main()
