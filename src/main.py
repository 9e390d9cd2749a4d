"""
Главный модуль приложения Notes Assistant.

Содержит точку входа и консольный интерфейс для индексации заметок,
поиска связанных заметок, вопросов к заметкам и диалога с агентом.
"""

import os
import sys
import logging
from typing import Any, Callable, Dict, List, Optional

import yaml

from llm_client import LocalLLMClient, CompletionConfig, LLMError
from action_handler import ActionExecutor, AgentSession, ActionError
from document_store import FileSystemDocumentStore, DocumentStoreError
from rag import VectorIndex, EmbeddingGenerator, DocumentRetriever, AnswerAssembler
from rag.embeddings import EmbeddingConfig, EmbeddingError, EmbeddingInputError
from rag.retriever import IndexEmptyError, RetrieverError, ScoredEntry
from rag.reports import (
    format_related_notes_report,
    format_answer_report,
    related_notes_filename,
    answer_filename,
)


logger = logging.getLogger(__name__)

DEFAULT_CONFIG_NAME = 'local_llm_config.yaml'
AGENT_EXIT_WORDS = ('/exit', '/quit', '/close')


def load_config(config_path: str) -> dict:
    """
    Загрузка конфигурации из YAML файла.

    Args:
        config_path: Путь к файлу конфигурации

    Returns:
        Словарь с конфигурацией

    Raises:
        FileNotFoundError: Если файл не найден
        yaml.YAMLError: Если ошибка парсинга YAML
    """
    with open(config_path, 'r', encoding='utf-8') as f:
        return yaml.safe_load(f)


def setup_logging(config: Dict[str, Any], base_dir: str) -> None:
    """
    Настройка журнала для разработчика.

    Подробности ошибок (сырые ответы моделей, трассировки) пишутся
    только сюда, пользователь видит короткие уведомления.
    """
    log_config = config.get('logging') or {}
    level = getattr(logging, str(log_config.get('level', 'INFO')).upper(), logging.INFO)
    log_file = log_config.get('file')

    handlers: List[logging.Handler] = []
    if log_file:
        if not os.path.isabs(log_file):
            log_file = os.path.join(base_dir, log_file)
        os.makedirs(os.path.dirname(log_file), exist_ok=True)
        handlers.append(logging.FileHandler(log_file, encoding='utf-8'))
    else:
        handlers.append(logging.StreamHandler(sys.stderr))

    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=handlers
    )


def console_notify(message: str) -> None:
    """Короткое уведомление пользователю."""
    print(f"[Notice] {message}")


def prompt_user(prompt: str) -> Optional[str]:
    """
    Запрос свободного текста у пользователя.

    Returns:
        Введённый текст или None, если ввод прерван или пуст
    """
    try:
        value = input(f"{prompt} ").strip()
    except (EOFError, KeyboardInterrupt):
        print()
        return None
    return value or None


class NotesAssistant:
    """
    Основной класс ассистента по заметкам.

    Координирует работу всех компонентов:
    - Хранилище заметок
    - Векторный индекс и поиск
    - Ответы на вопросы через локальную LLM
    - Агент, выполняющий действия над файлами
    """

    def __init__(self, config: Dict[str, Any], base_dir: str,
                 notifier: Callable[[str], None] = console_notify,
                 prompter: Callable[[str], Optional[str]] = prompt_user) -> None:
        """
        Инициализация ассистента.

        Args:
            config: Конфигурация (см. config/local_llm_config.yaml)
            base_dir: Базовая директория для относительных путей
            notifier: Показ уведомлений пользователю
            prompter: Запрос текста у пользователя

        Действия:
        - Создать хранилище заметок
        - Инициализировать клиентов моделей
        - Создать пустой индекс и компоненты поиска
        """
        self._config = config or {}
        self._notify = notifier
        self._prompt = prompter

        # Хранилище заметок
        vault_path = (self._config.get('vault') or {}).get('path', 'vault')
        if not os.path.isabs(vault_path):
            vault_path = os.path.join(base_dir, vault_path)
        self._store = FileSystemDocumentStore(vault_path)

        # 1. Embedding Generator
        emb_cfg = self._config.get('embedding_model') or {}
        emb_defaults = EmbeddingConfig()
        self._embedding_generator = EmbeddingGenerator(
            EmbeddingConfig(
                host=emb_cfg.get('host', emb_defaults.host),
                port=emb_cfg.get('port', emb_defaults.port),
                model_name=emb_cfg.get('model_name', emb_defaults.model_name),
                endpoint=emb_cfg.get('endpoint', emb_defaults.endpoint),
                timeout=emb_cfg.get('timeout', emb_defaults.timeout),
                retry_attempts=emb_cfg.get('retry_attempts', emb_defaults.retry_attempts),
                min_text_length=emb_cfg.get('min_text_length', emb_defaults.min_text_length)
            ),
            notifier=notifier
        )

        # 2. Completion client
        gen_cfg = self._config.get('generation_model') or {}
        gen_defaults = CompletionConfig()
        self._llm_client = LocalLLMClient(
            CompletionConfig(
                host=gen_cfg.get('host', gen_defaults.host),
                port=gen_cfg.get('port', gen_defaults.port),
                model_name=gen_cfg.get('model_name', gen_defaults.model_name),
                endpoint=gen_cfg.get('endpoint', gen_defaults.endpoint),
                timeout=gen_cfg.get('timeout', gen_defaults.timeout),
                stream=gen_cfg.get('stream', gen_defaults.stream)
            ),
            notifier=notifier
        )

        # 3. Index, retriever, answers
        indexing_cfg = self._config.get('indexing') or {}
        self._index = VectorIndex(
            self._embedding_generator,
            min_content_length=indexing_cfg.get(
                'min_content_length', VectorIndex.DEFAULT_MIN_CONTENT_LENGTH
            )
        )
        self._retriever = DocumentRetriever(self._index, self._embedding_generator)
        self._assembler = AnswerAssembler(self._llm_client)

        retrieval_cfg = self._config.get('retrieval') or {}
        self._related_top_k = retrieval_cfg.get('related_top_k', DocumentRetriever.RELATED_TOP_K)
        self._context_top_k = retrieval_cfg.get('context_top_k', DocumentRetriever.CONTEXT_TOP_K)

        # 4. Agent
        self._executor = ActionExecutor(self._store)

    def start(self) -> None:
        """
        Запуск консольного интерфейса.

        Действия:
        - Вывести приветственное сообщение
        - Запустить главный цикл обработки ввода
        - Обрабатывать команды и вопросы пользователя
        """
        self.print_welcome()

        if not self._llm_client.check_model_availability():
            model_name = (self._config.get('generation_model') or {}).get('model_name', 'llama3')
            self._notify(f"Model {model_name} is not available. Make sure Ollama is running:")
            self._notify(f"  ollama pull {model_name}")

        while True:
            try:
                user_input = input("\n> ").strip()

                if not user_input:
                    continue

                response = self.process_input(user_input)

                if response:
                    print(f"\n{response}")

            except (KeyboardInterrupt, EOFError):
                print("\n\nВыход из программы...")
                break
            except Exception as e:
                logger.exception("Command failed")
                print(f"\nОшибка: {e}")

    def process_input(self, user_input: str) -> Optional[str]:
        """
        Обработка ввода пользователя.

        Args:
            user_input: Текст, введенный пользователем

        Returns:
            Ответ ассистента или None для команд без ответа

        Действия:
        - Если ввод начинается с / - выполнить команду
        - Иначе считать ввод вопросом к заметкам
        """
        if user_input.startswith('/'):
            return self.handle_command(user_input)

        return self.ask_question(user_input)

    def handle_command(self, command: str) -> Optional[str]:
        """
        Обработка команд пользователя.

        Args:
            command: Команда (например, /index, /related, /exit)

        Returns:
            Результат выполнения команды или None

        Поддерживаемые команды:
        - /index - полная пересборка индекса заметок
        - /related [запрос] - отчёт со связанными заметками
        - /ask [вопрос] - ответ модели по заметкам
        - /agent - диалог с агентом, управляющим файлами
        - /status - состояние индекса
        - /help - показать справку по командам
        - /exit или /quit - выход из программы
        """
        parts = command.split(maxsplit=1)
        cmd = parts[0].lower()
        args = parts[1].strip() if len(parts) > 1 else None

        if cmd == '/index':
            return self.rebuild_index()
        elif cmd == '/related':
            return self.find_related(args)
        elif cmd == '/ask':
            return self.ask_question(args)
        elif cmd == '/agent':
            self.run_agent_session()
            return None
        elif cmd == '/status':
            return self.index_status()
        elif cmd == '/help':
            self.print_help()
            return None
        elif cmd in ['/exit', '/quit']:
            print("До свидания!")
            sys.exit(0)
        else:
            return f"Неизвестная команда: {cmd}. Введите /help для справки."

    def rebuild_index(self) -> str:
        """Полная пересборка индекса по всем заметкам хранилища."""
        self._notify("Indexing all notes for AI...")
        result = self._index.rebuild(self._store.list_documents())
        self._notify("Indexing complete!")
        return (f"Индексация завершена!\n"
                f"Документов: {result.total_documents}\n"
                f"Проиндексировано: {result.indexed}\n"
                f"Пропущено: {result.skipped}\n"
                f"Ошибок: {result.failed}")

    def index_status(self) -> str:
        if self._index.is_empty():
            return "Индекс пуст. Запустите /index"
        return (f"Заметок в индексе: {len(self._index)}\n"
                f"Размерность: {self._index.dimension}\n"
                f"Построен: {self._index.indexed_at.isoformat(timespec='seconds')}")

    def find_related(self, query: Optional[str] = None) -> Optional[str]:
        """
        Поиск заметок, связанных с запросом, и запись отчёта.

        Returns:
            Путь созданного отчёта или None
        """
        if not self._ensure_index_ready():
            return None

        if not query:
            query = self._prompt("Enter your query (e.g., high school):")
            if not query:
                return None

        results = self._search(self._retriever.find_related, query, self._related_top_k)
        if results is None:
            return None

        report = format_related_notes_report(query, results)
        return self._write_report(related_notes_filename(query), report,
                                  "Related notes written to new file.",
                                  "Failed to create related notes file. See log for details.")

    def ask_question(self, question: Optional[str] = None) -> Optional[str]:
        """
        Ответ модели на вопрос по заметкам и запись отчёта.

        Returns:
            Путь созданного отчёта или None
        """
        if not self._ensure_index_ready():
            return None

        if not question:
            question = self._prompt("Ask a question about your notes:")
            if not question:
                return None

        context = self._search(self._retriever.find_context, question, self._context_top_k)
        if context is None:
            return None

        try:
            result = self._assembler.answer(question, context)
        except LLMError:
            # Клиент уже уведомил пользователя
            return None

        report = format_answer_report(question, result)
        return self._write_report(answer_filename(question), report,
                                  "AI answer written to new file.",
                                  "Failed to create AI answer file. See log for details.")

    def run_agent_session(self) -> None:
        """
        Интерактивный диалог с агентом.

        Сессия живёт до пустого ввода или /exit; история сообщений
        хранится только внутри сессии.
        """
        session = AgentSession(self._llm_client, self._executor)
        print("Агент готов. Пустая строка или /exit - завершить диалог.")

        try:
            while True:
                message = self._prompt("You:")
                if not message or message.lower() in AGENT_EXIT_WORDS:
                    break

                try:
                    reply = session.send_message(message)
                except LLMError:
                    continue
                except ActionError as e:
                    logger.exception("Agent turn failed")
                    self._notify(f"Agent error: {e}")
                    continue

                print(f"\nAssistant: {reply.content}")
        finally:
            session.close()

    def _ensure_index_ready(self) -> bool:
        if self._index.is_rebuilding:
            self._notify("Indexing is in progress, please wait.")
            return False
        if self._index.is_empty():
            self._notify('Please run "/index" first.')
            return False
        return True

    def _search(self, search: Callable[[str, int], List[ScoredEntry]],
                query: str, top_k: int) -> Optional[List[ScoredEntry]]:
        """Вызов поиска с преобразованием ошибок в уведомления."""
        try:
            return search(query, top_k)
        except IndexEmptyError:
            self._notify('Please run "/index" first.')
        except EmbeddingInputError as e:
            self._notify(f"Query is too short: {e}")
        except EmbeddingError:
            # Генератор эмбедингов уже уведомил пользователя
            pass
        except RetrieverError as e:
            # Размерность запроса не совпадает с индексом: сменилась модель эмбедингов
            logger.warning("Search failed: %s", e)
            self._notify("Embedding model changed, run /index again.")
        return None

    def _write_report(self, filename: str, report: str,
                      success_notice: str, failure_notice: str) -> Optional[str]:
        try:
            self._store.create_file(filename, report)
        except (DocumentStoreError, OSError):
            logger.exception("Report creation failed for %s", filename)
            self._notify(failure_notice)
            return None
        self._notify(success_notice)
        return f"Отчёт: {filename}"

    def print_welcome(self) -> None:
        """
        Вывод приветственного сообщения.
        """
        print("""
╔════════════════════════════════════════════════╗
║         NOTES ASSISTANT v1.0                   ║
║     Локальный RAG по вашим заметкам            ║
╚════════════════════════════════════════════════╝

Доступные команды:
  /index            - Индексировать заметки
  /related <текст>  - Найти связанные заметки
  /ask <вопрос>     - Спросить модель о заметках
  /agent            - Диалог с агентом (файлы и папки)
  /status           - Состояние индекса
  /help             - Показать справку
  /exit             - Выход

Начните с /index!
    """)

    def print_help(self) -> None:
        """
        Вывод справки по командам.
        """
        print("""
Справка по командам:

  /index
    Полностью пересобирает индекс по всем заметкам хранилища.
    Отчёты ассистента и заметки короче 50 символов пропускаются.

  /related <запрос>
    Записывает в хранилище отчёт "Related Notes - ..." с 10
    наиболее близкими к запросу заметками.

  /ask <вопрос>
    Передаёт модели 3 наиболее релевантные заметки и вопрос,
    записывает ответ в отчёт "AI Answer - ...".
    Ввод без / тоже считается вопросом.

  /agent
    Диалог с агентом, который создаёт, изменяет и удаляет
    заметки и папки. Пустая строка завершает диалог.

  /status
    Показывает размер и время построения индекса.

  /help
    Показывает эту справку

  /exit или /quit
    Завершает работу программы
    """)


def main(argv: Optional[List[str]] = None) -> None:
    """
    Точка входа в приложение.

    Действия:
    - Загрузить конфигурацию (путь можно передать первым аргументом)
    - Настроить журнал
    - Создать экземпляр NotesAssistant и запустить консольный интерфейс
    """
    argv = sys.argv[1:] if argv is None else argv
    base_dir = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
    config_path = argv[0] if argv else os.path.join(base_dir, 'config', DEFAULT_CONFIG_NAME)

    try:
        config = load_config(config_path) or {}
    except FileNotFoundError as e:
        print(f"Ошибка: не найден файл конфигурации - {e}")
        sys.exit(1)
    except yaml.YAMLError as e:
        print(f"Ошибка: некорректный файл конфигурации - {e}")
        sys.exit(1)

    setup_logging(config, base_dir)

    assistant = NotesAssistant(config, base_dir)
    assistant.start()


if __name__ == "__main__":
    main()
