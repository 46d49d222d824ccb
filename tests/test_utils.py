import base64
import struct
from urllib.parse import unquote

from madi_store.schema import Product
from madi_store.utils import (
    audio_data_url, encode_audio, format_number, pcm_to_wav, plain_number, price_string, whatsapp_order_url
)


def test_format_number_grouping():
    assert format_number(1299, "en-US") == "1,299"
    assert format_number(584550, "ru-RU") == "584\u00a0550"
    assert format_number(999, "ru-RU") == "999"
    assert format_number(12.5, "ru-RU") == "12,5"
    assert format_number(8996.4, "en-US") == "8,996.4"
    assert format_number(0.12345, "en-US") == "0.123"


def test_plain_number():
    assert plain_number(150000.0) == "150000"
    assert plain_number(19.99) == "19.99"


def test_pcm_to_wav_header():
    pcm = b"\x01\x00\x02\x00" * 10

    wav = pcm_to_wav(pcm)

    assert len(wav) == 44 + len(pcm)
    assert wav[:4] == b"RIFF" and wav[8:16] == b"WAVEfmt "
    riff_size, = struct.unpack("<I", wav[4:8])
    assert riff_size == 36 + len(pcm)
    fmt = struct.unpack("<IHHIIHH", wav[16:36])
    assert fmt == (16, 1, 1, 24000, 48000, 2, 16)
    assert wav[36:40] == b"data"
    assert struct.unpack("<I", wav[40:44])[0] == len(pcm)
    assert wav[44:] == pcm


def test_audio_data_url_wraps_pcm():
    pcm = b"\x00\x01" * 4
    url = audio_data_url(base64.b64encode(pcm).decode())

    assert url.startswith("data:audio/wav;base64,")
    wav = base64.b64decode(url.split(",", 1)[1])
    assert wav[44:] == pcm


def test_encode_audio_accepts_bytes_or_text():
    assert encode_audio(b"\x01\x02") == "AQI="
    assert encode_audio("AQI=") == "AQI="
    assert encode_audio(None) is None
    assert encode_audio(b"") is None


def test_whatsapp_order_message():
    product = Product(id=8, name="Sky Drone", category="ДРОНЫ", variant="Fly More", currency="USD", priceUSD=1299)

    url = whatsapp_order_url(product)

    assert url.startswith("https://wa.me/77012226621?text=")
    message = unquote(url.split("text=", 1)[1])
    assert "- Товар: Sky Drone" in message
    assert "- Вариант: Fly More" in message
    assert "- Цена: $1,299 (~584\u00a0550 ₸)" in message
    assert "- Код товара: 8" in message
    assert " " not in url


def test_price_string_for_kzt_and_missing_price():
    kzt = Product(id=7, name="Phone X", category="C", currency="KZT", priceKZT=150000)
    none = Product(id=1, name="N", category="C", currency="KZT")
    assert price_string(kzt) == "150\u00a0000 ₸"
    assert price_string(none) == "Цена по запросу"
