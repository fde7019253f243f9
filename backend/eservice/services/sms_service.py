"""
Hahu SMS gateway client.

All calls are form-urlencoded; credentials come from HAHU_* settings.
Hahu's response shape is loose, so OTP extraction and verification
accept the handful of field names the gateway is known to use.
"""

import httpx
from typing import Optional, Dict, Any

from eservice.core.config import settings
from eservice.core.exceptions import SMSServiceError, SMSNotConfiguredError
from eservice.core.logging_config import logger


class HahuSMSClient:
    """Send SMS, send gateway-generated OTPs and verify them."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        secret: Optional[str] = None,
        mode: Optional[str] = None,
        device: Optional[str] = None,
        sim: Optional[int] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = (base_url or settings.HAHU_API_URL).rstrip("/")
        self.secret = secret if secret is not None else settings.HAHU_API_SECRET
        self.mode = mode if mode is not None else settings.HAHU_API_MODE
        self.device = device if device is not None else settings.HAHU_API_DEVICE
        self.sim = sim or settings.HAHU_SIM
        self.timeout = timeout or settings.SMS_TIMEOUT_SECONDS
        self._transport = transport

    @property
    def is_configured(self) -> bool:
        return bool(self.secret and self.mode and self.device)

    def _ensure_configured(self) -> None:
        if not self.is_configured:
            logger.error("[HahuSMS] Missing secret, mode or device configuration")
            raise SMSNotConfiguredError()

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self._transport)

    async def _parse(self, response: httpx.Response, action: str) -> Dict[str, Any]:
        if response.status_code >= 400:
            logger.error(f"[HahuSMS] {action} returned {response.status_code}: {response.text}")
            raise SMSServiceError(
                f"Hahu SMS API returned {response.status_code}: {response.text}",
                provider_response=response.text,
            )
        try:
            return response.json()
        except ValueError:
            raise SMSServiceError(f"Hahu SMS API returned an invalid response for {action}")

    async def send_sms(self, phone: str, message: str) -> Dict[str, Any]:
        """POST {base}/send/sms"""
        self._ensure_configured()
        form = {
            "secret": self.secret,
            "mode": self.mode,
            "device": self.device,
            "sim": str(self.sim),
            "priority": str(settings.HAHU_PRIORITY),
            "phone": phone,
            "message": message,
        }
        try:
            async with self._client() as client:
                response = await client.post(f"{self.base_url}/send/sms", data=form)
        except httpx.HTTPError as e:
            logger.log_sms_event("send_sms", phone, success=False, reason=str(e))
            raise SMSServiceError(f"Failed to reach Hahu SMS API: {e}")

        result = await self._parse(response, "send_sms")
        logger.log_sms_event("send_sms", phone, success=True)
        return result

    async def send_otp(
        self,
        phone: str,
        message: Optional[str] = None,
        expire: Optional[int] = None,
    ) -> Dict[str, Any]:
        """POST {base}/send/otp; Hahu generates the code and substitutes {{otp}}"""
        self._ensure_configured()
        form = {
            "secret": self.secret,
            "type": "sms",
            "mode": self.mode,
            "device": self.device,
            "sim": str(self.sim),
            "phone": phone,
            "expire": str(expire or settings.HAHU_OTP_EXPIRE_SECONDS),
            "message": message or settings.HAHU_OTP_MESSAGE,
        }
        try:
            async with self._client() as client:
                response = await client.post(f"{self.base_url}/send/otp", data=form)
        except httpx.HTTPError as e:
            logger.log_sms_event("send_otp", phone, success=False, reason=str(e))
            raise SMSServiceError(f"Failed to reach Hahu OTP API: {e}")

        result = await self._parse(response, "send_otp")
        logger.log_sms_event("send_otp", phone, success=True)
        return result

    async def verify_otp(self, otp: str) -> Dict[str, Any]:
        """GET {base}/get/otp?secret&otp"""
        if not self.secret:
            raise SMSNotConfiguredError()
        try:
            async with self._client() as client:
                response = await client.get(
                    f"{self.base_url}/get/otp",
                    params={"secret": self.secret, "otp": str(otp)},
                )
        except httpx.HTTPError as e:
            raise SMSServiceError(f"Failed to reach Hahu OTP API: {e}")
        return await self._parse(response, "verify_otp")


def extract_otp_code(result: Dict[str, Any]) -> Optional[str]:
    """Generated code from a send_otp response, if the gateway returned it"""
    if not isinstance(result, dict):
        return None
    data = result.get("data") if isinstance(result.get("data"), dict) else {}
    for value in (result.get("otp"), result.get("code"), data.get("otp"), data.get("code")):
        if value not in (None, ""):
            return str(value)
    return None


VERIFIED_STATUSES = ("200", "valid", "success")


def is_otp_verified(result: Dict[str, Any]) -> bool:
    """
    Interpret a verify_otp response; Hahu answers {status: 200, message: 'OTP has been verified!'}.

    When a status is present it decides alone; the message text is ignored.
    """
    if not isinstance(result, dict):
        return False
    if result.get("status") is not None:
        return str(result["status"]).strip().lower() in VERIFIED_STATUSES
    if result.get("valid") is True or result.get("success") is True:
        return True
    data = result.get("data")
    return isinstance(data, dict) and (data.get("valid") is True or data.get("success") is True)


_sms_client: Optional[HahuSMSClient] = None


def get_sms_client() -> HahuSMSClient:
    """FastAPI dependency; tests override it with a fake client"""
    global _sms_client
    if _sms_client is None:
        _sms_client = HahuSMSClient()
    return _sms_client
