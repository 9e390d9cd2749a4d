"""
Промпт агента, управляющего файлами хранилища.

Содержит:
- Описание допустимых действий
- Пример запроса с JSON массивом действий
- Пример обычного текстового ответа

Базовый промпт загружается из файла agent_prompt.txt
"""

import os


def _load_prompt_from_file(filename: str) -> str:
    """
    Загрузка промпта из текстового файла.

    Args:
        filename: Имя файла относительно директории prompts

    Returns:
        Содержимое файла как строка

    Raises:
        FileNotFoundError: Если файл не найден
        IOError: Если не удалось прочитать файл
    """
    prompts_dir = os.path.dirname(os.path.abspath(__file__))
    file_path = os.path.join(prompts_dir, filename)

    try:
        with open(file_path, 'r', encoding='utf-8') as f:
            return f.read().strip()
    except FileNotFoundError:
        raise FileNotFoundError(f"Файл промпта не найден: {file_path}")
    except IOError as e:
        raise IOError(f"Ошибка при чтении файла промпта: {e}")


# Инструкция агента (загружается из файла)
AGENT_PROMPT = _load_prompt_from_file("agent_prompt.txt")


def get_agent_prompt(user_message: str, base_prompt: str = None) -> str:
    """
    Полный промпт для одного хода агента.

    Args:
        user_message: Текущее сообщение пользователя
        base_prompt: Инструкция вместо AGENT_PROMPT (для тестов и настройки)

    Returns:
        Инструкция, затем сообщение пользователя и приглашение к ответу
    """
    if base_prompt is None:
        base_prompt = AGENT_PROMPT
    return f"{base_prompt}\n\nUser request: {user_message.strip()}\nReply:"
