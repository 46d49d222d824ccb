import base64
import io
import wave
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional, Union
from urllib.parse import quote

from .config import settings
from .schema import Product

Number = Union[int, float]

# group separator, decimal separator
_LOCALE_SEPARATORS = {
    "en-US": (",", "."),
    "ru-RU": ("\u00a0", ","),
}

PRICE_ON_REQUEST = "Цена по запросу"

# characters encodeURIComponent leaves unescaped
_URI_SAFE = "-_.!~*'()"

def format_number(value: Number, locale: str = "en-US") -> str:
    """
    Formats a number with locale digit grouping, keeping at most three
    fraction digits and dropping trailing zeros ("1,299", "584 550", "12,5").
    """
    group_sep, decimal_sep = _LOCALE_SEPARATORS[locale]
    quantized = Decimal(str(value)).quantize(Decimal("0.001"), rounding=ROUND_HALF_UP)
    sign = "-" if quantized < 0 else ""
    integer_part, _, fraction = f"{abs(quantized):f}".partition(".")
    fraction = fraction.rstrip("0")
    grouped = f"{int(integer_part):,}".replace(",", group_sep)
    return sign + grouped + (decimal_sep + fraction if fraction else "")

def plain_number(value: Number) -> str:
    """Renders 1299.0 as "1299" and 1299.5 as "1299.5"."""
    if float(value).is_integer():
        return str(int(value))
    return str(value)

def usd_to_kzt(price_usd: Number) -> Number:
    return price_usd * settings.usd_to_kzt_rate

def price_string(product: Product) -> str:
    """One-line price used in order messages: "$1,299 (~584 550 ₸)" or "150 000 ₸"."""
    price = product.price
    if not price:
        return PRICE_ON_REQUEST
    if product.currency == "USD":
        return f"${format_number(price, 'en-US')} (~{format_number(usd_to_kzt(price), 'ru-RU')} ₸)"
    return f"{format_number(price, 'ru-RU')} ₸"

def whatsapp_order_url(product: Product) -> str:
    """Builds a wa.me link with a pre-filled order message for the product."""
    message = (
        "Здравствуйте!\n"
        f"Хочу заказать следующий товар из вашего магазина {settings.store_name}:\n"
        f"- Товар: {product.name}\n"
        f"- Вариант: {product.variant or ''}\n"
        f"- Цена: {price_string(product)}\n"
        f"- Код товара: {product.id}\n"
        "Спасибо!"
    )
    return f"https://wa.me/{settings.whatsapp_phone}?text={quote(message, safe=_URI_SAFE)}"

def pcm_to_wav(pcm_data: bytes, sample_rate: int = 24000) -> bytes:
    """
    Wraps raw PCM samples in a WAV container.

    Args:
        pcm_data: Little-endian signed 16-bit mono samples.
        sample_rate: Samples per second.

    Returns:
        The complete WAV file: a 44-byte RIFF header followed by the samples.
    """
    buffer = io.BytesIO()
    with wave.open(buffer, "wb") as wav_file:
        wav_file.setnchannels(1)
        wav_file.setsampwidth(2)
        wav_file.setframerate(sample_rate)
        wav_file.writeframes(pcm_data)
    return buffer.getvalue()

def audio_data_url(audio_b64: str, sample_rate: int = 24000) -> str:
    """Decodes base64 PCM from the proxy into a playable data: URL."""
    wav_bytes = pcm_to_wav(base64.b64decode(audio_b64), sample_rate=sample_rate)
    return "data:audio/wav;base64," + base64.b64encode(wav_bytes).decode("ascii")

def encode_audio(data: Optional[Union[bytes, str]]) -> Optional[str]:
    """Normalizes inline audio from the SDK (raw bytes or base64 text) to base64 text."""
    if not data:
        return None
    if isinstance(data, bytes):
        return base64.b64encode(data).decode("ascii")
    return data
