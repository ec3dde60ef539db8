"""Interactive Telegram login for the Saved Messages rescue channel."""

from __future__ import annotations

import os
from getpass import getpass

import qrcode
from telethon import TelegramClient, errors

LOGIN_METHODS = {"qr", "phone"}


def _print_qr(url: str) -> None:
    qr = qrcode.QRCode(border=1)
    qr.add_data(url)
    qr.make(fit=True)
    qr.print_ascii(invert=True)


def _resolve_2fa_password() -> str:
    return os.getenv("2FA") or getpass("2FA password: ")


async def _login_with_qr(client: TelegramClient) -> None:
    qr = await client.qr_login()
    print("Scan this code in Telegram > Settings > Devices:")
    _print_qr(qr.url)
    await qr.wait(timeout=120)


async def _login_with_phone(client: TelegramClient) -> None:
    phone = os.getenv("PHONE") or input("Phone number (international format): ").strip()
    await client.send_code_request(phone)
    code = input("Login code: ").strip()
    await client.sign_in(phone=phone, code=code)


def _login_method() -> str:
    method = (os.getenv("LOGIN_METHOD") or "").strip().lower()
    if method in LOGIN_METHODS:
        return method
    answer = input("Login with [q]r code or [p]hone code? ").strip().lower()
    return "phone" if answer.startswith("p") else "qr"


async def authorize(client: TelegramClient) -> None:
    """Log the session in unless it is already authorized."""

    if await client.is_user_authorized():
        return

    try:
        if _login_method() == "phone":
            await _login_with_phone(client)
        else:
            await _login_with_qr(client)
    except errors.SessionPasswordNeededError:
        await client.sign_in(password=_resolve_2fa_password())
