import pytest

from madi_store.render import (
    is_seo_ready, render_categories, render_chat, render_modal, render_price, render_products
)
from madi_store.schema import ChatMessage, GenerationRecord, ModalState, Product, TaskStatus
from madi_store.utils import format_number


def make_product(**overrides):
    data = {"id": 1, "name": "Item", "category": "АКСЕССУАРЫ", "currency": "USD"}
    data.update(overrides)
    return Product(**data)


@pytest.mark.parametrize("price", [1, 19.99, 1299, 2500.5, 100000])
def test_usd_price_shows_kzt_approximation(price):
    html = render_price(make_product(priceUSD=price))

    assert f"${format_number(price, 'en-US')}" in html
    assert f"~{format_number(price * 450, 'ru-RU')} ₸" in html


def test_usd_price_formatting():
    html = render_price(make_product(priceUSD=1299))
    assert "$1,299</span>" in html
    assert "~584\u00a0550 ₸" in html


def test_kzt_price_has_no_conversion():
    html = render_price(make_product(currency="KZT", priceKZT=150000))

    assert "150\u00a0000 ₸" in html
    assert "Цена в KZT" in html
    assert "~" not in html


def test_missing_price_is_on_request():
    assert "Цена по запросу" in render_price(make_product())
    assert "Цена по запросу" in render_price(make_product(currency="KZT", priceUSD=10))


def test_seo_badge_rules():
    bare = make_product(id=1)
    described = make_product(id=2, description="Hand-written copy.")
    generated = make_product(id=3)
    ui_state = {3: {"desc": GenerationRecord(generatedContent="AI copy")}}

    assert is_seo_ready(bare, ui_state) is False
    assert is_seo_ready(described, ui_state) is True
    assert is_seo_ready(generated, ui_state) is True

    html = render_products([bare, generated], "All", ui_state)
    assert html.count("SEO: DRAFT") == 1
    assert html.count("SEO: READY") == 1


def test_product_card_contents():
    product = make_product(name="Sky <Drone>", variant="Fly More", priceUSD=1299, isPreorder=True)

    html = render_products([product], "All", {})

    assert "Sky &lt;Drone&gt;" in html
    assert "ПРЕДЗАКАЗ" in html
    assert "Оформить предзаказ" in html
    assert "Требуется AI-генерация" in html
    for task in ("desc", "analysis", "audio"):
        assert f'data-task="{task}"' in html
    assert "placehold.co" in html


def test_products_filtered_by_category():
    phone = make_product(id=1, category="СМАРТФОНЫ")
    drone = make_product(id=2, category="ДРОНЫ")

    html = render_products([phone, drone], "ДРОНЫ", {})

    assert 'data-product-id="2"' in html
    assert 'data-product-id="1"' not in html


def test_categories_label_all_and_mark_active():
    html = render_categories(["All", "ДРОНЫ"], "All")

    assert '>Все товары</button>' in html
    assert 'data-filter="All" class="btn-category mr-3 last:mr-0 active"' in html
    assert 'data-filter="ДРОНЫ" class="btn-category mr-3 last:mr-0 "' in html


def test_chat_escapes_user_text_and_formats_assistant():
    messages = [
        ChatMessage(role="user", text="<b>**hi**</b>"),
        ChatMessage(role="assistant", text="**Phone X**"),
    ]

    html = render_chat(messages, pending=True)

    assert '<div class="message user">&lt;b&gt;**hi**&lt;/b&gt;</div>' in html
    assert '<div class="message assistant"><strong class="product-link"' in html
    assert html.endswith('<div class="message loading"><span></span><span></span><span></span></div>')


def test_modal_presentations():
    assert "display: none" in render_modal(ModalState())

    error = render_modal(ModalState(title="Ошибка", body="Ошибка: x", kind="error", status=TaskStatus.ERROR, open=True))
    assert "bg-red-900/50 text-red-300" in error

    analysis = render_modal(ModalState(title="A", kind="analysis", open=True))
    assert "text-cyan-400" in analysis
    assert "min-h-[100px]" in analysis

    action = render_modal(ModalState(title="B", kind="action", open=True))
    assert "action-modal-body" in action
    assert "text-white" in action
