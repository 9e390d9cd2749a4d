"""
Обработчик действий агента над хранилищем заметок.

Обеспечивает разбор JSON массива действий из ответа LLM, выполнение
действий над файлами и папками и ведение истории диалога агента.
"""

import json
import logging
from typing import Any, Callable, Dict, List, Optional, TYPE_CHECKING
from dataclasses import dataclass, field
from enum import Enum

from document_store import DocumentStoreError, EntityKind
from prompts import get_agent_prompt

if TYPE_CHECKING:
    from document_store import BaseDocumentStore
    from llm_client import BaseLLMClient


logger = logging.getLogger(__name__)

NO_ACTIONS_MESSAGE = "No actions performed."
NO_MESSAGE_FALLBACK = "No valid actions or message returned."

ROLE_USER = "user"
ROLE_ASSISTANT = "assistant"


class ActionType(Enum):
    """Допустимые типы действий."""
    CREATE_FILE = "create_file"
    CREATE_FOLDER = "create_folder"
    DELETE_FILE = "delete_file"
    DELETE_FOLDER = "delete_folder"
    UPDATE_FILE = "update_file"


class AgentState(Enum):
    """Состояния хода агента."""
    IDLE = "idle"
    AWAITING_MODEL = "awaiting_model"
    PARSING_RESPONSE = "parsing_response"
    EXECUTING_ACTIONS = "executing_actions"
    EMITTING_MESSAGE = "emitting_message"


class ResponseKind(Enum):
    ACTIONS = "actions"
    MESSAGE = "message"


@dataclass
class ChatMessage:
    """Сообщение диалога агента."""
    role: str
    content: str


@dataclass
class Action:
    """Действие над хранилищем."""
    type: ActionType
    path: str
    content: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Action':
        """
        Создание действия из объекта JSON.

        Args:
            data: Объект вида {"type": ..., "path": ..., "content": ...}

        Returns:
            Проверенное действие

        Raises:
            UnknownActionTypeError: Тип действия не поддерживается
            ActionValidationError: Нет пути или поля имеют неверный тип
        """
        raw_type = data.get("type")
        try:
            action_type = ActionType(raw_type)
        except ValueError:
            raise UnknownActionTypeError(raw_type)

        path = data.get("path")
        if not isinstance(path, str) or not path.strip():
            raise ActionValidationError("отсутствует поле 'path'")

        content = data.get("content")
        if content is not None and not isinstance(content, str):
            raise ActionValidationError("поле 'content' должно быть строкой")

        return cls(type=action_type, path=path.strip(), content=content)


@dataclass
class ParsedResponse:
    """Результат разбора ответа модели."""
    kind: ResponseKind
    actions: List[Dict[str, Any]] = field(default_factory=list)
    message: str = ""


def parse_agent_response(llm_response: str) -> ParsedResponse:
    """
    Разбор ответа модели на действия или текстовое сообщение.

    Берётся подстрока от первой '[' до последней ']'. Эвристика
    ошибается, если в обычном тексте есть посторонняя пара скобок;
    тогда разбор JSON не удастся и ответ вернётся как сообщение.

    Args:
        llm_response: Текст ответа модели

    Returns:
        ParsedResponse с действиями или с обрезанным текстом ответа
    """
    text = llm_response or ""
    start = text.find('[')
    end = text.rfind(']')

    if start != -1 and end != -1 and start < end:
        try:
            actions = _parse_action_array(text[start:end + 1])
            return ParsedResponse(kind=ResponseKind.ACTIONS, actions=actions)
        except ResponseParseError as e:
            logger.info("Bracketed response is not an action list (%s), treating as message", e)

    return ParsedResponse(kind=ResponseKind.MESSAGE, message=text.strip())


def _parse_action_array(json_content: str) -> List[Dict[str, Any]]:
    """
    Raises:
        ResponseParseError: Не JSON или не массив объектов
    """
    try:
        data = json.loads(json_content)
    except json.JSONDecodeError as e:
        raise ResponseParseError(f"некорректный JSON: {e}")

    if not isinstance(data, list):
        raise ResponseParseError("ожидался JSON массив")
    if not all(isinstance(item, dict) for item in data):
        raise ResponseParseError("элементы массива должны быть объектами")
    return data


class ActionExecutor:
    """
    Выполнение действий агента над хранилищем.

    Каждое действие выполняется изолированно: ошибка одного не
    прерывает следующие, а попадает строкой в итоговую сводку.
    """

    def __init__(self, store: 'BaseDocumentStore') -> None:
        self._store = store
        self._handlers: Dict[ActionType, Callable[[Action], str]] = {
            ActionType.CREATE_FOLDER: self._create_folder,
            ActionType.CREATE_FILE: self._create_file,
            ActionType.DELETE_FILE: self._delete_file,
            ActionType.DELETE_FOLDER: self._delete_folder,
            ActionType.UPDATE_FILE: self._update_file,
        }

    def execute(self, actions: List[Dict[str, Any]]) -> str:
        """
        Выполнение списка действий по порядку.

        Args:
            actions: Объекты действий из ответа модели

        Returns:
            Сводка: по строке на действие, либо NO_ACTIONS_MESSAGE
        """
        if not actions:
            return NO_ACTIONS_MESSAGE

        lines = []
        for raw_action in actions:
            lines.append(self.execute_one(raw_action))
        return "\n".join(lines)

    def execute_one(self, raw_action: Dict[str, Any]) -> str:
        """Выполнение одного действия; возвращает строку сводки."""
        try:
            action = Action.from_dict(raw_action)
        except UnknownActionTypeError as e:
            logger.warning("Unknown action type: %r", e.action_type)
            return f"Unknown action type: {e.action_type}"
        except ActionValidationError as e:
            return f"Error in {raw_action.get('type')}: {e}"

        try:
            return self._handlers[action.type](action)
        except ActionExecutionError as e:
            logger.warning("Action %s %s failed: %s", action.type.value, action.path, e)
            return f"Error in {action.type.value} {action.path}: {e}"

    def _create_folder(self, action: Action) -> str:
        self._run(self._store.create_folder, action.path)
        return f"Created folder: {action.path}"

    def _create_file(self, action: Action) -> str:
        self._run(self._store.create_file, action.path, action.content or "")
        return f"Created file: {action.path}"

    def _delete_file(self, action: Action) -> str:
        if self._kind(action.path) is not EntityKind.FILE:
            return f"Skipped delete_file: {action.path} is not a file"
        self._run(self._store.delete_file, action.path)
        return f"Deleted file: {action.path}"

    def _delete_folder(self, action: Action) -> str:
        if self._kind(action.path) is not EntityKind.FOLDER:
            return f"Skipped delete_folder: {action.path} is not a folder"
        self._run(self._store.delete_folder, action.path)
        return f"Deleted folder: {action.path}"

    def _update_file(self, action: Action) -> str:
        if self._kind(action.path) is not EntityKind.FILE:
            return f"Skipped update_file: {action.path} is not a file"
        self._run(self._store.update_file, action.path, action.content or "")
        return f"Updated file: {action.path}"

    def _kind(self, path: str) -> Optional[EntityKind]:
        return self._run(self._store.entity_kind, path)

    @staticmethod
    def _run(func: Callable, *args):
        """Вызов операции хранилища с приведением ошибок к ActionExecutionError."""
        try:
            return func(*args)
        except (DocumentStoreError, OSError) as e:
            raise ActionExecutionError(str(e)) from e


class AgentSession:
    """
    Диалог с агентом.

    Ход: IDLE -> AWAITING_MODEL -> PARSING_RESPONSE ->
    EXECUTING_ACTIONS | EMITTING_MESSAGE -> IDLE.
    История сообщений живёт до закрытия сессии.
    """

    def __init__(self, llm_client: 'BaseLLMClient', executor: ActionExecutor,
                 base_prompt: Optional[str] = None) -> None:
        """
        Args:
            llm_client: Клиент генерации текста
            executor: Исполнитель действий
            base_prompt: Инструкция агента вместо стандартной
        """
        self._llm_client = llm_client
        self._executor = executor
        self._base_prompt = base_prompt
        self._messages: List[ChatMessage] = []
        self._state = AgentState.IDLE
        self._closed = False

    @property
    def state(self) -> AgentState:
        return self._state

    @property
    def closed(self) -> bool:
        return self._closed

    def send_message(self, message: str) -> ChatMessage:
        """
        Один ход диалога.

        Args:
            message: Сообщение пользователя

        Returns:
            Ответ ассистента (сводка действий или текст модели)

        Raises:
            SessionClosedError: Сессия уже закрыта
            LLMError: Ошибка модели (состояние возвращается в IDLE)
        """
        if self._closed:
            raise SessionClosedError("Сессия агента закрыта")

        self._messages.append(ChatMessage(role=ROLE_USER, content=message))
        self._state = AgentState.AWAITING_MODEL
        try:
            prompt = get_agent_prompt(message, self._base_prompt)
            raw_response = self._llm_client.complete(prompt)

            self._state = AgentState.PARSING_RESPONSE
            parsed = parse_agent_response(raw_response)

            if parsed.kind is ResponseKind.ACTIONS:
                self._state = AgentState.EXECUTING_ACTIONS
                content = self._executor.execute(parsed.actions)
            else:
                self._state = AgentState.EMITTING_MESSAGE
                content = parsed.message or NO_MESSAGE_FALLBACK

            reply = ChatMessage(role=ROLE_ASSISTANT, content=content)
            self._messages.append(reply)
            return reply
        finally:
            self._state = AgentState.IDLE

    def history(self) -> List[ChatMessage]:
        """Копия истории сообщений."""
        return self._messages.copy()

    def close(self) -> None:
        self._messages = []
        self._closed = True


class ActionError(Exception):
    """Базовый класс ошибок агента."""
    pass


class ResponseParseError(ActionError):
    """Ответ модели не является массивом действий."""
    pass


class ActionValidationError(ActionError):
    """Действие не прошло проверку."""
    pass


class UnknownActionTypeError(ActionValidationError):
    """Неизвестный тип действия."""

    def __init__(self, action_type: Any) -> None:
        super().__init__(f"Неизвестный тип действия: {action_type}")
        self.action_type = action_type


class ActionExecutionError(ActionError):
    """Ошибка выполнения действия в хранилище."""
    pass


class SessionClosedError(ActionError):
    """Сессия агента закрыта."""
    pass
