from dataclasses import dataclass, field
from typing import List, Optional

from .catalog import ALL_CATEGORIES, build_catalog_summary, build_system_instruction, derive_categories
from .schema import ChatMessage, GenerationRecord, ModalState, Product, UiState

DESC_TASK = "desc"

@dataclass
class RenderedView:
    categories: str = ""
    products: str = ""
    modal: str = ""
    chat: str = ""
    preloader: str = ""

@dataclass
class AppState:
    """Everything the storefront shows, owned in one place."""
    products: List[Product] = field(default_factory=list)
    categories: List[str] = field(default_factory=list)
    catalog_summary: str = ""
    system_instruction: str = ""
    active_filter: str = ALL_CATEGORIES
    ui_state: UiState = field(default_factory=dict)
    chat_messages: List[ChatMessage] = field(default_factory=list)
    chat_pending: bool = False
    chat_input_enabled: bool = True
    chat_input_focused: bool = False
    modal: ModalState = field(default_factory=ModalState)
    highlighted_product_id: Optional[int] = None
    load_error: bool = False
    view: RenderedView = field(default_factory=RenderedView)

    def set_catalog(self, products: List[Product]) -> None:
        self.products = products
        self.categories = derive_categories(products)
        self.catalog_summary = build_catalog_summary(products)
        self.system_instruction = build_system_instruction(self.catalog_summary)

    def find_product(self, product_id: int) -> Optional[Product]:
        return next((p for p in self.products if p.id == product_id), None)

    def find_product_by_name(self, name: str) -> Optional[Product]:
        wanted = name.strip()
        return next((p for p in self.products if p.name.strip() == wanted), None)

    def generated_description(self, product_id: int) -> Optional[str]:
        record = self.ui_state.get(product_id, {}).get(DESC_TASK)
        return record.generatedContent if record else None

    def apply_stored_descriptions(self) -> None:
        """Puts previously generated descriptions back onto the loaded products."""
        for product_id in self.ui_state:
            product = self.find_product(product_id)
            text = self.generated_description(product_id)
            if product and text:
                product.description = text

    def record_description(self, product: Product, text: str) -> None:
        self.ui_state.setdefault(product.id, {})[DESC_TASK] = GenerationRecord(
            generatedContent=text, isSeoReady=True
        )
        product.description = text
