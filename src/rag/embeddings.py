"""
Модуль генерации эмбедингов.

Отвечает за:
- Взаимодействие с локальной моделью эмбедингов (Ollama /api/embeddings)
- Проверку входного текста и формата ответа
- Уведомление пользователя об ошибках
"""

import logging
import numbers
import time
from typing import Callable, List, Optional
from dataclasses import dataclass

import requests


logger = logging.getLogger(__name__)


@dataclass
class EmbeddingConfig:
    """Конфигурация для генератора эмбедингов."""
    host: str = "127.0.0.1"
    port: int = 11434
    model_name: str = "nomic-embed-text"
    endpoint: str = "/api/embeddings"
    timeout: int = 30
    retry_attempts: int = 1
    min_text_length: int = 10


class EmbeddingGenerator:
    """
    Генератор эмбедингов через локальную LLM.

    Обеспечивает:
    - Подключение к локальной модели (Ollama)
    - Генерацию эмбедингов для текстов заметок и запросов
    - Уведомление пользователя при сбое (один раз, вызывающий код
      повторно не уведомляет)
    """

    def __init__(self, config: EmbeddingConfig,
                 notifier: Optional[Callable[[str], None]] = None) -> None:
        """
        Инициализация генератора.

        Args:
            config: Конфигурация подключения к модели
            notifier: Функция показа коротких уведомлений пользователю
        """
        self._config = config
        self._notifier = notifier
        self._base_url = f"http://{config.host}:{config.port}{config.endpoint}"

    def generate(self, text: str) -> List[float]:
        """
        Генерация эмбединга для одного текста.

        Args:
            text: Текст для преобразования

        Returns:
            Вектор эмбединга (список float)

        Raises:
            EmbeddingInputError: Текст пустой или слишком короткий
            EmbeddingConnectionError: Модель недоступна
            EmbeddingParseError: Ответ модели непригоден
        """
        self._validate_text(text)
        try:
            response = self._retry_with_backoff(self._send_request, text)
            return self._parse_embedding(response)
        except EmbeddingError as e:
            logger.error("Embedding request failed: %s", e)
            self._notify("Failed to get embedding from the local model. See log for details.")
            raise

    def check_model_availability(self) -> bool:
        """
        Проверка доступности модели.

        Returns:
            True если модель доступна
        """
        try:
            self._parse_embedding(self._send_request("availability check"))
            return True
        except EmbeddingError:
            return False

    def _validate_text(self, text: str) -> None:
        """Отсекает пустые и слишком короткие тексты до запроса к модели."""
        stripped = (text or "").strip()
        if not stripped:
            raise EmbeddingInputError("Текст для эмбединга пуст")
        if len(stripped) < self._config.min_text_length:
            raise EmbeddingInputError(
                f"Текст слишком короткий ({len(stripped)} < {self._config.min_text_length} символов)"
            )

    def _send_request(self, text: str) -> dict:
        """
        Отправка запроса к API локальной LLM.

        Args:
            text: Текст для эмбединга

        Returns:
            JSON ответ API

        Raises:
            EmbeddingConnectionError: При проблемах с подключением
            EmbeddingParseError: Если тело ответа не JSON
        """
        payload = {
            "model": self._config.model_name,
            "prompt": text
        }

        try:
            response = requests.post(
                self._base_url,
                json=payload,
                timeout=self._config.timeout
            )
        except requests.exceptions.ConnectionError:
            raise EmbeddingConnectionError("Не удалось подключиться к модели эмбедингов")
        except requests.exceptions.Timeout:
            raise EmbeddingConnectionError("Таймаут подключения к модели эмбедингов")
        except requests.exceptions.RequestException as e:
            raise EmbeddingConnectionError(f"Ошибка запроса к модели эмбедингов: {e}") from e

        if response.status_code != 200:
            raise EmbeddingConnectionError(f"Ошибка API: {response.status_code}")

        try:
            return response.json()
        except ValueError:
            logger.debug("Raw embedding payload: %r", response.text)
            raise EmbeddingParseError("Ответ модели не является JSON")

    def _parse_embedding(self, response: dict) -> List[float]:
        """
        Извлечение эмбединга из ответа API.

        Args:
            response: JSON ответ от API

        Returns:
            Вектор эмбединга

        Raises:
            EmbeddingParseError: При неожиданном формате ответа
        """
        if not isinstance(response, dict):
            raise EmbeddingParseError("Пустой или неожиданный ответ модели")
        if "embedding" not in response:
            raise EmbeddingParseError("Отсутствует поле 'embedding' в ответе")

        embedding = response["embedding"]
        if not isinstance(embedding, list) or not embedding:
            raise EmbeddingParseError("Поле 'embedding' пустое или не является списком")
        # bool является подклассом int, но числом эмбединга не считается
        if not all(isinstance(x, numbers.Real) and not isinstance(x, bool) for x in embedding):
            raise EmbeddingParseError("Поле 'embedding' содержит нечисловые значения")
        return [float(x) for x in embedding]

    def _retry_with_backoff(self, func: callable, *args, **kwargs):
        """
        Выполнение функции с retry и экспоненциальным backoff.

        Args:
            func: Функция для выполнения
            *args, **kwargs: Аргументы функции

        Returns:
            Результат функции

        Raises:
            EmbeddingConnectionError: После исчерпания попыток
        """
        max_attempts = max(1, self._config.retry_attempts)
        for attempt in range(max_attempts):
            try:
                return func(*args, **kwargs)
            except EmbeddingConnectionError as e:
                if attempt == max_attempts - 1:
                    raise
                wait_time = 2 ** attempt  # 1, 2, 4 секунды
                logger.warning("Attempt %d failed (%s), retrying in %ds", attempt + 1, e, wait_time)
                time.sleep(wait_time)

    def _notify(self, message: str) -> None:
        if self._notifier is not None:
            self._notifier(message)


class EmbeddingError(Exception):
    """Базовый класс ошибок генерации эмбедингов."""
    pass


class EmbeddingInputError(EmbeddingError):
    """Текст не подходит для эмбединга."""
    pass


class EmbeddingConnectionError(EmbeddingError):
    """Ошибка подключения к LLM."""
    pass


class EmbeddingParseError(EmbeddingError):
    """Ошибка парсинга ответа."""
    pass
