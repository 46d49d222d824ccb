from enum import Enum
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, model_validator

class Product(BaseModel):
    model_config = ConfigDict(extra='ignore')

    id: int
    name: str
    category: str
    variant: Optional[str] = None
    currency: Literal["USD", "KZT"]
    priceUSD: Optional[float] = None
    priceKZT: Optional[float] = None
    image: Optional[str] = None
    description: Optional[str] = None
    isPreorder: bool = False

    @property
    def price(self) -> Optional[float]:
        """The price in the product's own currency, if it has one."""
        return self.priceUSD if self.currency == "USD" else self.priceKZT

class GenerationRecord(BaseModel):
    generatedContent: Optional[str] = None
    isSeoReady: bool = False

    @model_validator(mode='after')
    def _content_means_ready(self) -> "GenerationRecord":
        if self.generatedContent is not None:
            self.isSeoReady = True
        return self

class ChatMessage(BaseModel):
    role: Literal["user", "assistant"]
    text: str

# product id -> task name -> record
UiState = Dict[int, Dict[str, GenerationRecord]]

ui_state_adapter = TypeAdapter(UiState)
chat_messages_adapter = TypeAdapter(List[ChatMessage])

# --- Proxy API payloads ---
class ChatPayload(BaseModel):
    userInput: str = Field(min_length=1)
    systemInstruction: str = Field(min_length=1)

class ChatResponse(BaseModel):
    aiResponse: str

class ProxyProduct(BaseModel):
    """The product as the client sends it; the proxy only reads these fields."""
    model_config = ConfigDict(extra='allow')

    name: str
    id: Optional[int] = None
    variant: Optional[str] = None

class AITaskPayload(BaseModel):
    task: str = Field(min_length=1)
    product: ProxyProduct
    textToSpeak: Optional[str] = None

class TextTaskResponse(BaseModel):
    generatedContent: str

class AudioTaskResponse(BaseModel):
    audioData: str

class ErrorResponse(BaseModel):
    error: str

# --- Storefront UI state ---
class TaskStatus(str, Enum):
    IDLE = "idle"
    PENDING = "pending"
    SUCCESS = "success"
    ERROR = "error"

class ModalState(BaseModel):
    title: str = ""
    body: str = ""
    kind: str = ""
    status: TaskStatus = TaskStatus.IDLE
    open: bool = False
    product_id: Optional[int] = None
