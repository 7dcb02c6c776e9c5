import json
import logging
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from urllib.parse import quote

import jwt
import requests
from django.conf import settings
from requests import RequestException

logger = logging.getLogger(__name__)

GATEWAY_NAME = "Edviron"


class EdvironError(Exception):
    """Upstream gateway failure; ``details`` holds the provider's error body."""

    def __init__(self, message, status_code=None, details=None):
        super().__init__(message)
        self.status_code = status_code
        self.details = details


@dataclass(frozen=True)
class GatewayConfig:
    base_url: str
    api_key: str
    pg_key: str
    school_id: str
    callback_url: str = ""
    timeout: float = 30

    @classmethod
    def from_settings(cls) -> "GatewayConfig":
        conf = getattr(settings, "EDVIRON", {}) or {}
        return cls(
            base_url=(conf.get("BASE_URL") or "").rstrip("/"),
            api_key=conf.get("API_KEY") or "",
            pg_key=conf.get("PG_KEY") or "",
            school_id=conf.get("SCHOOL_ID") or "",
            callback_url=conf.get("CALLBACK_URL") or "",
            timeout=float(conf.get("TIMEOUT") or 30),
        )


class JwtSigner:
    """Sign request payloads with the shared PG key (HS256)."""

    def __init__(self, secret: str):
        if not secret:
            raise EdvironError("Missing EDVIRON PG_KEY")
        self.secret = secret

    def sign(self, payload: dict) -> str:
        return jwt.encode(payload, self.secret, algorithm="HS256")


def _amount_str(amount) -> str:
    try:
        q = Decimal(str(amount)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    except Exception:
        raise EdvironError("Invalid amount value")
    s = format(q, "f")
    return s[:-3] if s.endswith(".00") else s


def _response_body(resp):
    try:
        return resp.json()
    except ValueError:
        return {"raw": resp.text}


class EdvironClient:
    def __init__(self, config: GatewayConfig, signer=None):
        self.config = config
        self.signer = signer or JwtSigner(config.pg_key)

    @classmethod
    def from_settings(cls) -> "EdvironClient":
        return cls(GatewayConfig.from_settings())

    def _headers(self) -> dict:
        if not self.config.api_key:
            raise EdvironError("Missing EDVIRON API_KEY")
        return {
            "Authorization": f"Bearer {self.config.api_key}",
            "Content-Type": "application/json",
        }

    def _check(self, resp, action: str) -> dict:
        data = _response_body(resp)
        if 200 <= resp.status_code < 300:
            return data
        logger.error("Edviron %s failed: status=%s body=%s", action, resp.status_code, json.dumps(data, default=str)[:800])
        raise EdvironError(f"{action} failed: HTTP {resp.status_code}", status_code=resp.status_code, details=data)

    def create_collect_request(self, amount, callback_url: str = "") -> dict:
        """Ask the gateway for a payment link.

        Returns ``{"collect_request_id": ..., "payment_url": ...}``.
        """
        callback_url = callback_url or self.config.callback_url
        amount_str = _amount_str(amount)
        sign = self.signer.sign({
            "school_id": self.config.school_id,
            "amount": amount_str,
            "callback_url": callback_url,
        })
        payload = {
            "school_id": self.config.school_id,
            "amount": amount_str,
            "callback_url": callback_url,
            "sign": sign,
        }
        url = f"{self.config.base_url}/create-collect-request"
        try:
            resp = requests.post(url, json=payload, headers=self._headers(), timeout=self.config.timeout)
        except RequestException as e:
            logger.exception("Edviron create-collect-request request failed")
            raise EdvironError(f"Gateway request failed: {e}")

        data = self._check(resp, "Create collect request")
        collect_request_id = data.get("collect_request_id")
        if not collect_request_id:
            raise EdvironError("collect_request_id missing in gateway response", status_code=resp.status_code, details=data)
        return {
            "collect_request_id": str(collect_request_id),
            "payment_url": data.get("Collect_request_url") or data.get("collect_request_url") or "",
        }

    def collect_request_status(self, collect_request_id: str) -> dict:
        """Return the gateway's view of a collect request (``status``, ``amount``, ``details``)."""
        sign = self.signer.sign({
            "school_id": self.config.school_id,
            "collect_request_id": collect_request_id,
        })
        url = f"{self.config.base_url}/collect-request/{quote(collect_request_id, safe='')}"
        params = {"school_id": self.config.school_id, "sign": sign}
        try:
            resp = requests.get(url, params=params, headers=self._headers(), timeout=self.config.timeout)
        except RequestException as e:
            logger.exception("Edviron collect-request status call failed for %s", collect_request_id)
            raise EdvironError(f"Gateway request failed: {e}")
        return self._check(resp, "Collect request status")
