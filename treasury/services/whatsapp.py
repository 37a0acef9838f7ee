from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx

from ..config import settings

logger = logging.getLogger(__name__)


class WhatsAppError(RuntimeError):
    pass


def _mask_phone(value: str) -> str:
    digits = value.strip()
    if len(digits) <= 4:
        return "***"
    return f"***{digits[-4:]}"


class WhatsAppClient:
    """Minimal Cloud API client that sends plain-text messages."""

    def __init__(self, transport: Optional[httpx.BaseTransport] = None) -> None:
        self._timeout = httpx.Timeout(settings.whatsapp_timeout_seconds)
        self._transport = transport

    @property
    def is_configured(self) -> bool:
        return settings.whatsapp_is_configured

    def _http_client(self) -> httpx.Client:
        return httpx.Client(
            base_url=settings.whatsapp_api_base.rstrip("/"),
            headers={"Authorization": f"Bearer {settings.whatsapp_token}"},
            timeout=self._timeout,
            transport=self._transport,
        )

    def send_text(self, to_phone: str, text: str) -> Optional[Dict[str, Any]]:
        """Send ``text`` to ``to_phone``; returns None when the integration is not configured."""
        if not self.is_configured:
            logger.info("WhatsApp is not configured; skipping message to %s", _mask_phone(to_phone))
            return None

        body = {
            "messaging_product": "whatsapp",
            "to": to_phone,
            "type": "text",
            "text": {"body": text},
        }
        path = f"/{settings.whatsapp_phone_number_id}/messages"
        with self._http_client() as client:
            response = client.post(path, json=body)
        try:
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            detail = exc.response.text
            logger.error("WhatsApp API error for %s: %s", _mask_phone(to_phone), detail)
            raise WhatsAppError(f"WhatsApp API responded with {exc.response.status_code}: {detail}") from exc
        try:
            return response.json()
        except ValueError:
            raise WhatsAppError("Unexpected response from WhatsApp API (non-JSON).")


whatsapp_client = WhatsAppClient()


def send_whatsapp(to_phone: str, text: str) -> Optional[Dict[str, Any]]:
    return whatsapp_client.send_text(to_phone, text)
