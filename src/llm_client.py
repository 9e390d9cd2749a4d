"""
Клиенты для генерации текста локальными LLM моделями.

Поддерживает:
- Локальные модели через Ollama (/api/generate, llama3 и другие)
- Ответ одним JSON объектом и потоковый NDJSON ответ
"""

import json
import logging
from typing import Any, Callable, Dict, Generator, Iterable, Optional
from abc import ABC, abstractmethod
from dataclasses import dataclass

import requests


logger = logging.getLogger(__name__)


@dataclass
class CompletionConfig:
    """Конфигурация модели генерации."""
    host: str = "127.0.0.1"
    port: int = 11434
    model_name: str = "llama3"
    endpoint: str = "/api/generate"
    timeout: int = 120  # Локальная модель может генерировать долго
    stream: bool = True


class BaseLLMClient(ABC):
    """
    Базовый абстрактный класс для LLM клиентов.

    Определяет общий интерфейс для всех реализаций.
    """

    @abstractmethod
    def complete(self, prompt: str) -> str:
        """
        Генерация текста по промпту.

        Args:
            prompt: Полный текст промпта

        Returns:
            Сгенерированный текст
        """
        pass


def iter_response_fragments(chunks: Iterable[str]) -> Generator[str, None, None]:
    """
    Разбор потока NDJSON на фрагменты текста ответа.

    Куски потока могут резать строки в любом месте, поэтому текст
    накапливается в буфере до появления полной строки. Строка, которая
    не разбирается как JSON, пропускается.

    Args:
        chunks: Последовательность кусков тела ответа

    Yields:
        Значения поля 'response' в порядке доставки
    """
    buffer = ""
    for chunk in chunks:
        if not chunk:
            continue
        buffer += chunk
        while "\n" in buffer:
            line, buffer = buffer.split("\n", 1)
            fragment = _parse_stream_line(line)
            if fragment is not None:
                yield fragment

    fragment = _parse_stream_line(buffer)
    if fragment is not None:
        yield fragment


def _parse_stream_line(line: str) -> Optional[str]:
    """Извлечение фрагмента 'response' из одной строки потока."""
    line = line.strip()
    if not line:
        return None
    try:
        data = json.loads(line)
    except json.JSONDecodeError:
        logger.warning("Skipping unparseable stream line: %r", line[:200])
        return None
    if not isinstance(data, dict):
        return None
    if data.get("error"):
        logger.warning("Ollama reported an error in stream: %s", data["error"])
    if isinstance(data.get("response"), str):
        return data["response"]
    return None


class LocalLLMClient(BaseLLMClient):
    """
    Клиент для локальных LLM моделей через Ollama.

    Поддерживает:
    - llama3 и другие модели, доступные в Ollama
    - Ответ одним JSON объектом (stream = False)
    - Потоковый ответ из NDJSON строк (stream = True)
    """

    def __init__(self, config: CompletionConfig,
                 notifier: Optional[Callable[[str], None]] = None) -> None:
        """
        Инициализация клиента для локальной LLM.

        Args:
            config: Хост, порт, модель и режим ответа
            notifier: Функция показа коротких уведомлений пользователю
        """
        self._config = config
        self._notifier = notifier
        self._base_url = f"http://{config.host}:{config.port}{config.endpoint}"

    def complete(self, prompt: str) -> str:
        """
        Отправка промпта в локальную LLM.

        Args:
            prompt: Полный текст промпта

        Returns:
            Текст ответа от модели

        Raises:
            LocalLLMConnectionError: Модель недоступна
            LocalLLMResponseError: Ответ не содержит текста
        """
        try:
            return self._request_completion(prompt)
        except LLMError as e:
            logger.error("Completion request failed: %s", e)
            self._notify("Failed to get completion from the local model. See log for details.")
            raise

    def check_model_availability(self) -> bool:
        """
        Проверка доступности модели.

        Returns:
            True если модель доступна и отвечает
        """
        try:
            test_payload = {
                "model": self._config.model_name,
                "prompt": "test",
                "stream": False
            }
            response = requests.post(
                self._base_url,
                json=test_payload,
                timeout=30
            )
            return response.status_code == 200
        except requests.exceptions.RequestException:
            return False

    def _request_completion(self, prompt: str) -> str:
        payload = {
            "model": self._config.model_name,
            "prompt": prompt,
            "stream": self._config.stream
        }

        try:
            response = requests.post(
                self._base_url,
                json=payload,
                timeout=self._config.timeout,
                stream=self._config.stream
            )
        except requests.exceptions.ConnectionError:
            raise LocalLLMConnectionError(
                f"Не удалось подключиться к Ollama на {self._config.host}:{self._config.port}"
            )
        except requests.exceptions.Timeout:
            raise LocalLLMConnectionError("Таймаут при генерации ответа")
        except requests.exceptions.RequestException as e:
            raise LocalLLMConnectionError(f"Ошибка запроса к Ollama: {e}") from e

        if response.status_code != 200:
            raise LocalLLMConnectionError(
                f"Ошибка Ollama API: {response.status_code} - {response.text}"
            )

        # Явно устанавливаем кодировку UTF-8
        response.encoding = 'utf-8'

        if self._config.stream:
            return self._read_stream(response)
        return self._parse_response(response)

    def _read_stream(self, response: requests.Response) -> str:
        """
        Сборка ответа из потока NDJSON.

        Raises:
            LocalLLMConnectionError: Соединение оборвалось во время чтения
            LocalLLMResponseError: Поток не содержит ни одного фрагмента
        """
        fragments = []
        try:
            chunks = response.iter_content(chunk_size=1024, decode_unicode=True)
            for fragment in iter_response_fragments(chunks):
                fragments.append(fragment)
        except requests.exceptions.RequestException as e:
            raise LocalLLMConnectionError(f"Поток ответа прерван: {e}")
        finally:
            response.close()

        if not fragments:
            raise LocalLLMResponseError("Поток ответа не содержит поля 'response'")
        return "".join(fragments)

    def _parse_response(self, response: requests.Response) -> str:
        """
        Парсинг ответа Ollama API одним объектом.

        Raises:
            LocalLLMResponseError: Если ответ имеет неожиданный формат
        """
        try:
            response_json: Dict[str, Any] = response.json()
        except ValueError:
            logger.debug("Raw completion payload: %r", response.text)
            raise LocalLLMResponseError("Ответ Ollama API не является JSON")

        if not isinstance(response_json, dict) or not isinstance(response_json.get("response"), str):
            raise LocalLLMResponseError("Ответ Ollama API не содержит строку 'response'")
        return response_json["response"]

    def _notify(self, message: str) -> None:
        if self._notifier is not None:
            self._notifier(message)


class LLMError(Exception):
    """Базовый класс ошибок LLM клиента."""
    pass


class LocalLLMError(LLMError):
    """Ошибка при работе с локальной LLM."""
    pass


class LocalLLMConnectionError(LocalLLMError):
    """Ошибка подключения к локальной LLM."""
    pass


class LocalLLMResponseError(LocalLLMError):
    """Ответ локальной LLM не содержит текста."""
    pass
