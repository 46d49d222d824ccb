import logging
from pathlib import Path
from typing import List, Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

PROJECT_ROOT = Path(__file__).resolve().parent.parent

class AppSettings(BaseSettings):
    # Core settings
    gemini_api_key: str = Field(default="", validation_alias=AliasChoices("GEMINI_API_KEY", "API_KEY"))
    port: int = 3001
    node_env: str = "development"

    # File paths
    client_dist_path: Path = PROJECT_ROOT / "client" / "dist"
    storage_path: Path = PROJECT_ROOT / ".storefront" / "local_storage.json"

    # CORS settings
    dev_origin: str = "http://localhost:5173"
    client_url: Optional[str] = None

    # Rate limiting (per client IP, fixed window)
    rate_limit_max_requests: int = 100
    rate_limit_window_seconds: int = 15 * 60
    rate_limit_message: str = "Too many requests from this IP, please try again after 15 minutes"

    # Storefront settings
    api_base_url: str = "http://localhost:3001"
    usd_to_kzt_rate: int = 450
    store_name: str = "MADI ELECTRONICS"
    whatsapp_phone: str = "77012226621"

    # Model names
    chat_model_name: str = "gemini-2.5-flash"
    text_generation_model_name: str = "gemini-2.5-flash"
    tts_model_name: str = "gemini-2.5-flash-preview-tts"
    tts_voice_name: str = "Kore"

    # Prompt Templates
    description_prompt_template: str = "Напиши продающее описание для продукта: {name}, Вариант: {variant}."
    description_system_instruction: str = (
        "Ты эксперт по копирайтингу. Напиши краткое, привлекательное SEO-оптимизированное описание "
        "в 2-3 абзацах. Используй сильные, продающие формулировки. Без заголовков и списков."
    )

    analysis_prompt_template: str = "Проведи конкурентный анализ для продукта: {name}. Выдели ключевые отличия."
    analysis_system_instruction: str = (
        "Ты аналитик рынка. Выдели 3-4 УТП или сравни с 1-2 аналогами в виде маркированного списка. "
        "Без вступлений и заключений."
    )

    tts_prompt_template: str = "Скажи профессионально: {text}"

    chat_system_instruction_template: str = """Ты — дружелюбный и стильный AI-консультант магазина {store_name}. Отвечай на вопросы клиентов, используя ТОЛЬКО следующий список товаров. Не придумывай товары, которых нет в списке. Будь вежлив и краток.

ВАЖНЫЕ ПРАВИЛА ФОРМАТИРОВАНИЯ:
1.  Когда перечисляешь товары, ОБЯЗАТЕЛЬНО используй маркированный список (Markdown). Каждый пункт списка должен быть на новой строке и начинаться со звездочки и пробела ('* ').
2.  Если пользователь запрашивает товары из нескольких категорий, сгруппируй их. Для каждой группы используй заголовок Markdown третьего уровня (###) с эмоджи и названием категории. Например: '### 📱 Смартфоны'.
3.  Выделяй полные названия товаров жирным шрифтом (например, **Samsung Galaxy Z Flip 7**).

Примеры эмоджи для категорий:
- СМАРТФОНЫ: 📱
- УМНЫЕ ОЧКИ: 👓
- APPLE: 💻
- НОСИМЫЕ: ⌚️
- АКСЕССУАРЫ: 🔌
- ДРОНЫ: 🚁
- СВЯЗЬ: 🛰️
- УМНЫЙ ДОМ: 🏠

Формат каждого пункта: "* 📱 **Название** - Вариант - Цена"

Каталог:
{catalog}"""

    model_config = SettingsConfigDict(
        env_file=PROJECT_ROOT / '.env',
        env_file_encoding='utf-8',
        extra='ignore',
        populate_by_name=True,
    )

    @property
    def is_production(self) -> bool:
        return self.node_env.lower() == "production"

    @property
    def allowed_origins(self) -> List[str]:
        return [origin for origin in (self.dev_origin, self.client_url) if origin]

settings = AppSettings()

if not settings.gemini_api_key:
    logger.critical("GEMINI_API_KEY not found. Please check your .env file or environment variables.")
