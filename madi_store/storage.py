"""
Local persistence for the storefront.

`LocalStorage` is a small string key-value store kept in one JSON file, the
counterpart of the browser's localStorage. `StatePersistence` keeps the UI
state and the chat transcript in it and never lets a storage problem reach
the caller.
"""
import json
import logging
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from pydantic import ValidationError

from .schema import ChatMessage, UiState, chat_messages_adapter, ui_state_adapter

logger = logging.getLogger(__name__)

UI_STATE_KEY = "uiState"
CHAT_MESSAGES_KEY = "chatMessages"

GREETING = "Здравствуйте! Я AI-ассистент. Чем могу помочь с выбором гаджета?"

def default_chat_messages() -> List[ChatMessage]:
    return [ChatMessage(role="assistant", text=GREETING)]

class LocalStorage:
    def __init__(self, path: Path):
        self.path = Path(path)

    def _read_all(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        data = json.loads(self.path.read_text(encoding="utf-8"))
        if not isinstance(data, dict):
            raise ValueError(f"Storage file {self.path} does not hold an object")
        return data

    def _write_all(self, data: Dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp_path.write_text(json.dumps(data, ensure_ascii=False), encoding="utf-8")
        tmp_path.replace(self.path)

    def get_item(self, key: str) -> Optional[str]:
        return self._read_all().get(key)

    def _read_for_write(self) -> Dict[str, str]:
        try:
            return self._read_all()
        except ValueError as e:
            logger.warning("Discarding unreadable storage file %s: %s", self.path, e)
            return {}

    def set_item(self, key: str, value: str) -> None:
        data = self._read_for_write()
        data[key] = value
        self._write_all(data)

    def remove_item(self, key: str) -> None:
        data = self._read_for_write()
        if data.pop(key, None) is not None:
            self._write_all(data)

    def clear(self) -> None:
        self._write_all({})

class StatePersistence:
    def __init__(self, storage: LocalStorage):
        self.storage = storage

    def load(self) -> Tuple[UiState, List[ChatMessage]]:
        """
        Reads the persisted UI state and chat transcript.

        Missing documents give an empty UI state and a transcript seeded with
        the greeting. Anything unreadable resets both to those defaults.
        """
        try:
            raw_ui_state = self.storage.get_item(UI_STATE_KEY)
            raw_chat_messages = self.storage.get_item(CHAT_MESSAGES_KEY)

            ui_state = ui_state_adapter.validate_json(raw_ui_state) if raw_ui_state else {}
            chat_messages = (
                chat_messages_adapter.validate_json(raw_chat_messages)
                if raw_chat_messages else default_chat_messages()
            )
            return ui_state, chat_messages
        except (OSError, ValueError, ValidationError) as e:
            logger.error("Failed to load state from local storage: %s", e)
            return {}, default_chat_messages()

    def save(self, ui_state: UiState, chat_messages: List[ChatMessage]) -> None:
        try:
            self.storage.set_item(UI_STATE_KEY, ui_state_adapter.dump_json(ui_state).decode("utf-8"))
            self.storage.set_item(CHAT_MESSAGES_KEY, chat_messages_adapter.dump_json(chat_messages).decode("utf-8"))
        except (OSError, ValueError) as e:
            logger.error("Failed to save state to local storage: %s", e)
