import re
from urllib.parse import quote


def normalize_whatsapp(phone: str) -> str:
    digits = re.sub(r"\D", "", phone or "")
    if digits.startswith("0"):
        digits = "254" + digits[1:]
    return digits


def tel_link(phone: str) -> str:
    return f"tel:{re.sub(r'[^0-9+]', '', phone or '')}"


def whatsapp_link(phone: str, text: str | None = None) -> str:
    link = f"https://wa.me/{normalize_whatsapp(phone)}"
    if text:
        link += f"?text={quote(text)}"
    return link


def contact_links(phone: str, whatsapp: str | None = None, text: str | None = None) -> dict:
    return {
        "call": tel_link(phone),
        "whatsapp": whatsapp_link(whatsapp or phone, text),
    }
