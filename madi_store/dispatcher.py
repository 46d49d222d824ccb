"""
Storefront actions: loading the catalog, running AI tasks for a product,
chatting with the assistant, and the small modal/filter interactions around
them. Every action mutates the explicit `AppState` and re-renders the view.
"""
import logging
from html import escape
from typing import Any, Dict, Optional

import httpx

from .catalog import fetch_catalog
from .config import AppSettings, settings as default_settings
from .render import (
    render_action_buttons, render_audio_player, render_loading, render_text_result, render_view
)
from .schema import ChatMessage, TaskStatus
from .state import DESC_TASK, AppState
from .storage import LocalStorage, StatePersistence
from .utils import audio_data_url

logger = logging.getLogger(__name__)

TASK_TITLES = {
    "desc": "✅ AI: SEO-ОПИСАНИЕ",
    "analysis": "📈 AI: РЫНОЧНЫЙ АНАЛИЗ",
    "audio": "🔊 AI: АУДИОКОНТЕНТ",
}

ERROR_TITLE = "Ошибка"
GENERIC_ERROR = "Произошла ошибка"
SERVER_ERROR = "Ошибка на сервере"
CHAT_FALLBACK = "Извините, произошла ошибка. Попробуйте еще раз."

class ProxyError(Exception):
    """The proxy answered with a non-OK status."""

def _error_message(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return SERVER_ERROR
    if isinstance(data, dict) and data.get("error"):
        return str(data["error"])
    return SERVER_ERROR

class Storefront:
    def __init__(self, client: httpx.AsyncClient, persistence: StatePersistence, state: Optional[AppState] = None):
        self.client = client
        self.persistence = persistence
        self.state = state or AppState()
        self._task_generation = 0

    async def aclose(self) -> None:
        await self.client.aclose()

    # --- helpers ---
    def render(self) -> None:
        self.state.view = render_view(self.state)

    def save(self) -> None:
        self.persistence.save(self.state.ui_state, self.state.chat_messages)

    def _set_modal(self, title: str, body: str, kind: str, status: TaskStatus, product_id: Optional[int] = None) -> None:
        modal = self.state.modal
        modal.title, modal.body, modal.kind, modal.status = title, body, kind, status
        if product_id is not None:
            modal.product_id = product_id
        self.render()

    async def _post(self, path: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        response = await self.client.post(path, json=payload)
        if response.is_error:
            raise ProxyError(_error_message(response))
        data = response.json()
        if not isinstance(data, dict):
            raise ProxyError(SERVER_ERROR)
        return data

    # --- startup ---
    async def initialize(self) -> bool:
        """
        Loads the catalog and the persisted state, then renders everything.

        Returns False when the catalog could not be loaded; the view then holds
        only the load-error presentation.
        """
        products = await fetch_catalog(self.client)
        if not products:
            self.state.load_error = True
            self.render()
            return False

        self.state.set_catalog(products)
        self.state.ui_state, self.state.chat_messages = self.persistence.load()
        self.state.apply_stored_descriptions()
        self.render()
        return True

    # --- catalog interactions ---
    def select_category(self, category: str) -> None:
        self.state.active_filter = category
        self.render()

    def close_modal(self) -> None:
        self.state.modal.open = False
        self.render()

    def open_product_link(self, name: str) -> bool:
        """Opens the action dialog for the product a bold chat span names."""
        product = self.state.find_product_by_name(name)
        if product is None:
            logger.info("No product named %r in the catalog", name)
            return False
        self.state.modal.open = True
        self._set_modal(product.name, render_action_buttons(product), "action", TaskStatus.IDLE, product.id)
        return True

    def show_details(self, product_id: int) -> None:
        self.state.modal.open = False
        self.state.highlighted_product_id = product_id
        self.render()

    # --- AI tasks ---
    def text_to_speak(self, product_id: int) -> str:
        product = self.state.find_product(product_id)
        return (
            self.state.generated_description(product_id)
            or product.description
            or f"Продукт {product.name}."
        )

    async def run_task(self, product_id: int, task: str) -> TaskStatus:
        product = self.state.find_product(product_id)
        if product is None or task not in TASK_TITLES:
            logger.warning("Ignoring task %r for unknown product %s", task, product_id)
            return TaskStatus.IDLE

        self._task_generation += 1
        generation = self._task_generation
        title = TASK_TITLES[task]
        self.state.modal.open = True
        self._set_modal(title, render_loading(), task, TaskStatus.PENDING, product_id)

        payload: Dict[str, Any] = {"task": task, "product": product.model_dump(mode="json")}
        if task == "audio":
            payload["textToSpeak"] = self.text_to_speak(product_id)

        try:
            result = await self._post("/api/ai", payload)
        except (httpx.HTTPError, ProxyError, ValueError) as e:
            if generation != self._task_generation:
                logger.info("Dropping stale failure of %s task for product %s", task, product_id)
                return TaskStatus.ERROR
            logger.error("AI task %s failed for product %s: %s", task, product_id, e)
            message = str(e) or GENERIC_ERROR
            self._set_modal(ERROR_TITLE, f"{ERROR_TITLE}: {escape(message)}", "error", TaskStatus.ERROR)
            return TaskStatus.ERROR

        if generation != self._task_generation:
            logger.info("Dropping stale result of %s task for product %s", task, product_id)
            return TaskStatus.SUCCESS

        if result.get("generatedContent"):
            content = result["generatedContent"]
            self._set_modal(title, render_text_result(content), task, TaskStatus.SUCCESS)
            if task == DESC_TASK:
                self.state.record_description(product, content)
                self.render()
                self.save()
            return TaskStatus.SUCCESS

        if result.get("audioData"):
            try:
                audio_url = audio_data_url(result["audioData"])
            except ValueError as e:
                logger.error("Could not decode audio for product %s: %s", product_id, e)
                self._set_modal(ERROR_TITLE, f"{ERROR_TITLE}: {GENERIC_ERROR}", "error", TaskStatus.ERROR)
                return TaskStatus.ERROR
            self._set_modal(title, render_audio_player(audio_url), task, TaskStatus.SUCCESS)
            return TaskStatus.SUCCESS

        logger.error("AI task %s for product %s returned no content", task, product_id)
        self._set_modal(ERROR_TITLE, f"{ERROR_TITLE}: {GENERIC_ERROR}", "error", TaskStatus.ERROR)
        return TaskStatus.ERROR

    # --- chat ---
    async def send_message(self, text: str) -> bool:
        user_input = text.strip()
        if not user_input or not self.state.chat_input_enabled:
            return False

        self.state.chat_messages.append(ChatMessage(role="user", text=user_input))
        self.state.chat_input_enabled = False
        self.state.chat_input_focused = False
        self.state.chat_pending = True
        self.render()

        try:
            data = await self._post("/api/chat", {
                "userInput": user_input,
                "systemInstruction": self.state.system_instruction,
            })
            reply = ChatMessage(role="assistant", text=data["aiResponse"])
        except (httpx.HTTPError, ProxyError, ValueError, KeyError, TypeError) as e:
            logger.error("Chat error: %s", e)
            reply = ChatMessage(role="assistant", text=CHAT_FALLBACK)
        finally:
            self.state.chat_pending = False

        self.state.chat_messages.append(reply)
        self.render()
        self.save()
        self.state.chat_input_enabled = True
        self.state.chat_input_focused = True
        return True

def create_storefront(app_settings: AppSettings = default_settings) -> Storefront:
    client = httpx.AsyncClient(base_url=app_settings.api_base_url)
    persistence = StatePersistence(LocalStorage(app_settings.storage_path))
    return Storefront(client, persistence)
