"""
Тесты для модуля генерации эмбедингов.
"""

import unittest
from unittest.mock import patch, Mock
import sys
import os

import requests

# Добавляем путь к src для импорта
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from rag.embeddings import (
    EmbeddingConfig,
    EmbeddingGenerator,
    EmbeddingError,
    EmbeddingInputError,
    EmbeddingConnectionError,
    EmbeddingParseError,
)


def make_response(payload, status_code=200):
    """Мок HTTP ответа с JSON телом."""
    response = Mock()
    response.status_code = status_code
    response.json.return_value = payload
    response.text = str(payload)
    return response


class TestEmbeddingConfig(unittest.TestCase):
    """Тесты для EmbeddingConfig."""

    def test_config_defaults(self):
        """Значения по умолчанию указывают на локальный Ollama."""
        config = EmbeddingConfig()
        self.assertEqual(config.host, "127.0.0.1")
        self.assertEqual(config.port, 11434)
        self.assertEqual(config.model_name, "nomic-embed-text")
        self.assertEqual(config.endpoint, "/api/embeddings")
        self.assertEqual(config.timeout, 30)
        self.assertEqual(config.retry_attempts, 1)
        self.assertEqual(config.min_text_length, 10)


class TestEmbeddingGeneratorUnit(unittest.TestCase):
    """Unit-тесты для EmbeddingGenerator (с моками)."""

    def setUp(self):
        """Настройка тестового окружения."""
        self.config = EmbeddingConfig(host="localhost")
        self.notifier = Mock()
        self.generator = EmbeddingGenerator(self.config, notifier=self.notifier)

    def test_init(self):
        """Проверка инициализации генератора."""
        self.assertEqual(
            self.generator._base_url,
            "http://localhost:11434/api/embeddings"
        )

    @patch('rag.embeddings.requests.post')
    def test_send_request_payload(self, mock_post):
        """В запросе передаются модель и текст."""
        mock_post.return_value = make_response({"embedding": [0.1, 0.2, 0.3]})

        result = self.generator._send_request("test text")

        self.assertEqual(result, {"embedding": [0.1, 0.2, 0.3]})
        mock_post.assert_called_once_with(
            "http://localhost:11434/api/embeddings",
            json={"model": "nomic-embed-text", "prompt": "test text"},
            timeout=30
        )

    @patch('rag.embeddings.requests.post')
    def test_generate_success(self, mock_post):
        """Проверка успешной генерации эмбединга."""
        mock_post.return_value = make_response({"embedding": [0.1, 0.2, 3]})

        result = self.generator.generate("a long enough text")

        self.assertEqual(result, [0.1, 0.2, 3.0])
        self.notifier.assert_not_called()

    @patch('rag.embeddings.requests.post')
    def test_generate_rejects_empty_text(self, mock_post):
        """Пустой текст отклоняется без запроса к модели."""
        with self.assertRaises(EmbeddingInputError):
            self.generator.generate("   \n ")

        mock_post.assert_not_called()
        self.notifier.assert_not_called()

    @patch('rag.embeddings.requests.post')
    def test_generate_rejects_short_text(self, mock_post):
        """Текст короче минимальной длины отклоняется."""
        with self.assertRaises(EmbeddingInputError):
            self.generator.generate("  short  ")

        mock_post.assert_not_called()

    @patch('rag.embeddings.requests.post')
    def test_connection_error(self, mock_post):
        """Ошибка подключения: исключение и одно уведомление."""
        mock_post.side_effect = requests.exceptions.ConnectionError()

        with self.assertRaises(EmbeddingConnectionError) as context:
            self.generator.generate("a long enough text")

        self.assertIn("Не удалось подключиться", str(context.exception))
        self.notifier.assert_called_once()

    @patch('rag.embeddings.requests.post')
    def test_timeout(self, mock_post):
        """Проверка обработки таймаута."""
        mock_post.side_effect = requests.exceptions.Timeout()

        with self.assertRaises(EmbeddingConnectionError) as context:
            self.generator.generate("a long enough text")

        self.assertIn("Таймаут", str(context.exception))

    @patch('rag.embeddings.requests.post')
    def test_other_transport_errors(self, mock_post):
        """Любой сбой транспорта requests считается недоступностью модели."""
        for error in (requests.exceptions.ChunkedEncodingError(),
                      requests.exceptions.InvalidURL(),
                      requests.exceptions.TooManyRedirects()):
            with self.subTest(error=type(error).__name__):
                self.notifier.reset_mock()
                mock_post.side_effect = error

                with self.assertRaises(EmbeddingConnectionError) as context:
                    self.generator.generate("a long enough text")

                self.assertIs(context.exception.__cause__, error)
                self.notifier.assert_called_once()

    @patch('rag.embeddings.requests.post')
    def test_api_error_status(self, mock_post):
        """Код ответа не 200 считается недоступностью модели."""
        mock_post.return_value = make_response({}, status_code=500)

        with self.assertRaises(EmbeddingConnectionError) as context:
            self.generator.generate("a long enough text")

        self.assertIn("500", str(context.exception))

    @patch('rag.embeddings.requests.post')
    def test_non_json_body(self, mock_post):
        """Тело ответа не JSON."""
        response = make_response(None)
        response.json.side_effect = ValueError("no json")
        mock_post.return_value = response

        with self.assertRaises(EmbeddingParseError):
            self.generator.generate("a long enough text")
        self.notifier.assert_called_once()

    def test_parse_embedding_missing_field(self):
        """Проверка обработки отсутствующего поля."""
        with self.assertRaises(EmbeddingParseError) as context:
            self.generator._parse_embedding({"data": [0.1, 0.2, 0.3]})

        self.assertIn("embedding", str(context.exception))

    def test_parse_embedding_rejects_bad_vectors(self):
        """Пустой, нечисловой или не список - ошибка формата."""
        for bad in ([], None, "0.1,0.2", [0.1, "x"], [True, False], {"a": 1}):
            with self.subTest(embedding=bad):
                with self.assertRaises(EmbeddingParseError):
                    self.generator._parse_embedding({"embedding": bad})

    def test_parse_embedding_rejects_non_dict(self):
        with self.assertRaises(EmbeddingParseError):
            self.generator._parse_embedding(None)

    def test_errors_share_base_class(self):
        for error_cls in (EmbeddingInputError, EmbeddingConnectionError, EmbeddingParseError):
            self.assertTrue(issubclass(error_cls, EmbeddingError))

    @patch('rag.embeddings.requests.post')
    def test_check_model_availability(self, mock_post):
        """Доступность модели не уведомляет пользователя."""
        mock_post.return_value = make_response({"embedding": [0.1]})
        self.assertTrue(self.generator.check_model_availability())

        mock_post.side_effect = requests.exceptions.ConnectionError()
        self.assertFalse(self.generator.check_model_availability())
        self.notifier.assert_not_called()

    @patch('rag.embeddings.time.sleep')
    @patch('rag.embeddings.requests.post')
    def test_retry_with_backoff(self, mock_post, mock_sleep):
        """Проверка retry с экспоненциальным backoff."""
        generator = EmbeddingGenerator(EmbeddingConfig(retry_attempts=3))
        mock_post.side_effect = [
            requests.exceptions.ConnectionError(),
            requests.exceptions.ConnectionError(),
            make_response({"embedding": [0.1]}),
        ]

        result = generator.generate("a long enough text")

        self.assertEqual(result, [0.1])
        self.assertEqual(mock_post.call_count, 3)
        self.assertEqual(mock_sleep.call_count, 2)
        mock_sleep.assert_any_call(1)  # 2^0 = 1
        mock_sleep.assert_any_call(2)  # 2^1 = 2

    @patch('rag.embeddings.time.sleep')
    @patch('rag.embeddings.requests.post')
    def test_single_attempt_by_default(self, mock_post, mock_sleep):
        """По умолчанию выполняется один запрос."""
        mock_post.side_effect = requests.exceptions.ConnectionError()

        with self.assertRaises(EmbeddingConnectionError):
            self.generator.generate("a long enough text")

        self.assertEqual(mock_post.call_count, 1)
        mock_sleep.assert_not_called()


if __name__ == "__main__":
    unittest.main(verbosity=2)
