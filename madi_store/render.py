from html import escape
from typing import List

from .catalog import ALL_CATEGORIES
from .markdown import format_ai_response
from .schema import ChatMessage, ModalState, Product, TaskStatus, UiState
from .state import DESC_TASK, AppState, RenderedView
from .utils import PRICE_ON_REQUEST, format_number, usd_to_kzt, whatsapp_order_url

ALL_CATEGORIES_LABEL = "Все товары"
NO_DESCRIPTION = "Краткое описание отсутствует. Требуется AI-генерация."
IMAGE_PLACEHOLDER = "https://placehold.co/600x400/111827/9ca3af?text=Нет+Изображения"

SPINNER = (
    '<svg class="spinner h-5 w-5 mr-2" viewBox="0 0 24 24">'
    '<circle class="opacity-25" cx="12" cy="12" r="10" stroke="currentColor" stroke-width="4"></circle>'
    '<path class="opacity-75" fill="currentColor" d="M4 12a8 8 0 018-8V0C5.373 0 0 5.373 0 12h4zm2 '
    '5.291A7.962 7.962 0 014 12H0c0 3.042 1.135 5.824 3 7.938l3-2.647z"></path></svg>'
)

TASK_BUTTONS = [
    ("desc", "btn-ai", "Описание", "Создать SEO-описание"),
    ("analysis", "btn-analysis", "Анализ", "AI-Анализ Рынка"),
    ("audio", "btn-audio", "Озвучить", "Преобразовать в речь"),
]

MODAL_TITLE_COLORS = {
    "analysis": "text-cyan-400",
    "action": "text-white",
}

def render_categories(categories: List[str], active_filter: str) -> str:
    buttons = []
    for cat in categories:
        label = ALL_CATEGORIES_LABEL if cat == ALL_CATEGORIES else cat
        active = "active" if cat == active_filter else ""
        buttons.append(
            f'<button data-filter="{escape(cat)}" class="btn-category mr-3 last:mr-0 {active}">{escape(label)}</button>'
        )
    return "".join(buttons)

def is_seo_ready(product: Product, ui_state: UiState) -> bool:
    """Ready when flagged in UI state; without an entry, when the product already has a description."""
    record = ui_state.get(product.id, {}).get(DESC_TASK)
    if record is not None:
        return record.isSeoReady
    return bool(product.description)

def render_price(product: Product) -> str:
    price = product.price
    if not price:
        return f'<span class="text-xl font-bold text-gray-500">{PRICE_ON_REQUEST}</span>'
    if product.currency == "USD":
        return (
            f'<span class="text-3xl font-extrabold text-white">${format_number(price, "en-US")}</span>'
            f'<span class="text-sm font-semibold text-gray-400 block mt-1">~{format_number(usd_to_kzt(price), "ru-RU")} ₸</span>'
        )
    return (
        f'<span class="text-3xl font-extrabold text-white">{format_number(price, "ru-RU")} ₸</span>'
        '<span class="text-sm font-semibold text-gray-400 block mt-1">Цена в KZT</span>'
    )

def render_product_card(product: Product, ui_state: UiState, highlighted: bool = False) -> str:
    ready = is_seo_ready(product, ui_state)
    badge_color = "bg-emerald-600/80" if ready else "bg-magenta-600/80"
    preorder = (
        '<span class="absolute top-0 right-0 bg-magenta-500 text-gray-900 text-xs font-bold px-4 py-2 '
        'rounded-tr-xl rounded-bl-xl shadow-lg">ПРЕДЗАКАЗ</span>'
        if product.isPreorder else ""
    )
    buttons = "".join(
        f'<div class="relative w-full btn-base-container">'
        f'<button data-task="{task}" class="w-full {css} btn-base btn-ai-compact">{label}</button>'
        f'<span class="ai-tooltip">{tooltip}</span></div>'
        for task, css, label, tooltip in TASK_BUTTONS
    )
    order_label = "Оформить предзаказ" if product.isPreorder else "Купить через WhatsApp"
    card_class = "product-card highlighted" if highlighted else "product-card"
    name = escape(product.name)

    return f"""
<div class="{card_class}" data-product-id="{product.id}">
  <div class="absolute top-0 left-0 text-white text-xs font-semibold px-3 py-1.5 rounded-tl-xl rounded-br-xl flex items-center shadow-lg {badge_color}">SEO: {'READY' if ready else 'DRAFT'}</div>
  {preorder}
  <div class="relative h-64 bg-gray-900/50 flex items-center justify-center p-4">
    <img src="{escape(product.image or IMAGE_PLACEHOLDER)}" loading="lazy" onError="this.onerror=null;this.src='{IMAGE_PLACEHOLDER}';" alt="{name}" class="max-h-full w-auto object-contain rounded-md" />
  </div>
  <div class="p-6 flex-grow flex flex-col">
    <div class="flex-grow">
      <p class="text-xs font-medium text-magenta-400 uppercase tracking-widest mb-2">{escape(product.category)}</p>
      <h2 class="text-2xl font-bold text-gray-50 mb-1 leading-tight">{name}</h2>
      <p class="text-md text-gray-400 mb-4 font-light">{escape(product.variant or '')}</p>
      <p class="text-sm text-gray-300 italic mb-4 font-light min-h-[40px]">{escape(product.description or NO_DESCRIPTION)}</p>
      <div class="mb-6 pt-3 border-t border-gray-700">{render_price(product)}</div>
    </div>
    <div class="mt-auto pt-4 border-t border-gray-800"><div class="flex space-x-2 items-center">{buttons}</div></div>
  </div>
  <div class="p-6 pt-4">
    <a href="{escape(whatsapp_order_url(product))}" target="_blank" class="block w-full text-center btn-buy btn-base">{order_label}</a>
  </div>
</div>"""

def render_products(products: List[Product], active_filter: str, ui_state: UiState, highlighted_id=None) -> str:
    visible = products if active_filter == ALL_CATEGORIES else [p for p in products if p.category == active_filter]
    return "".join(render_product_card(p, ui_state, highlighted=p.id == highlighted_id) for p in visible)

def render_loading() -> str:
    return f'<div class="flex items-center text-lg">{SPINNER} Обработка...</div>'

def render_text_result(text: str) -> str:
    return f'<div class="max-h-64 overflow-y-auto">{escape(text).replace(chr(10), "<br>")}</div>'

def render_audio_player(audio_url: str) -> str:
    return f'<audio src="{audio_url}" controls autoplay class="w-full"></audio>'

def render_action_buttons(product: Product) -> str:
    return (
        '<div class="flex flex-col sm:flex-row space-y-4 sm:space-y-0 sm:space-x-4 w-full">'
        f'<button data-product-id-modal="{product.id}" class="modal-action-details-btn w-full btn-base btn-analysis">Подробнее на странице</button>'
        f'<a href="{escape(whatsapp_order_url(product))}" target="_blank" class="w-full btn-base btn-buy">Заказать в WhatsApp</a>'
        '</div>'
    )

def render_modal(modal: ModalState) -> str:
    if not modal.open:
        return '<div id="ai-modal" class="hidden" style="display: none"></div>'
    title_color = MODAL_TITLE_COLORS.get(modal.kind, "text-magenta-400")
    body_classes = ["transition-all", "duration-300", "flex", "items-center", "justify-center"]
    if modal.kind == "action":
        body_classes.append("action-modal-body")
    else:
        body_classes += ["p-3", "rounded-lg", "min-h-[100px]"]
    if modal.status == TaskStatus.ERROR:
        body_classes += ["bg-red-900/50", "text-red-300"]
    return (
        '<div id="ai-modal" class="open" style="display: flex">'
        f'<h3 id="ai-modal-title" class="text-2xl font-bold text-gray-50 mb-6 {title_color}">{escape(modal.title)}</h3>'
        f'<div id="ai-modal-body" class="{" ".join(body_classes)}">{modal.body}</div>'
        '</div>'
    )

def render_chat(messages: List[ChatMessage], pending: bool = False) -> str:
    parts = []
    for msg in messages:
        if msg.role == "assistant":
            parts.append(f'<div class="message assistant">{format_ai_response(msg.text)}</div>')
        else:
            parts.append(f'<div class="message user">{escape(msg.text)}</div>')
    if pending:
        parts.append('<div class="message loading"><span></span><span></span><span></span></div>')
    return "".join(parts)

def render_load_error() -> str:
    return (
        '<div class="text-center text-red-400">'
        '<h2 class="text-2xl font-bold mb-2">Ошибка загрузки!</h2>'
        '<p>Не удалось получить каталог товаров. Пожалуйста, попробуйте обновить страницу позже.</p>'
        '</div>'
    )

def render_view(state: AppState) -> RenderedView:
    if state.load_error:
        return RenderedView(preloader=render_load_error())
    return RenderedView(
        categories=render_categories(state.categories, state.active_filter),
        products=render_products(state.products, state.active_filter, state.ui_state, state.highlighted_product_id),
        modal=render_modal(state.modal),
        chat=render_chat(state.chat_messages, state.chat_pending),
    )
