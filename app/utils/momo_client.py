import hashlib
import hmac
import secrets
import time

import requests

from app.core.config import MomoConfig
from app.core.exceptions import GatewayError, GatewayTimeout
from app.core.logging_config import payment_logger

# Field order is part of the gateway's wire contract
CREATE_SIGNATURE_FIELDS = (
    "accessKey",
    "amount",
    "extraData",
    "ipnUrl",
    "orderId",
    "orderInfo",
    "partnerCode",
    "redirectUrl",
    "requestId",
    "requestType",
)

IPN_SIGNATURE_FIELDS = (
    "accessKey",
    "amount",
    "extraData",
    "message",
    "orderId",
    "orderInfo",
    "orderType",
    "partnerCode",
    "payType",
    "requestId",
    "responseTime",
    "resultCode",
    "transId",
)


def canonical_string(fields, values: dict) -> str:
    parts = []
    for name in fields:
        value = values.get(name)
        parts.append(f"{name}={'' if value is None else value}")
    return "&".join(parts)


def sign(raw: str, secret_key: str) -> str:
    return hmac.new(secret_key.encode(), raw.encode(), hashlib.sha256).hexdigest()


class MomoClient:
    """Signed requests to the MoMo wallet gateway."""

    def __init__(self, config: MomoConfig, http=None):
        self.config = config
        self.http = http or requests

    def new_order_id(self) -> str:
        # Never reused: timestamp plus random suffix
        return f"{self.config.partner_code}{int(time.time() * 1000)}{secrets.token_hex(3)}"

    def build_create_request(self, order_id: str, amount: str, order_info: str, extra_data: str = "") -> dict:
        cfg = self.config
        payload = {
            "partnerCode": cfg.partner_code,
            "accessKey": cfg.access_key,
            "requestId": order_id,
            "amount": amount,
            "orderId": order_id,
            "orderInfo": order_info,
            "redirectUrl": cfg.redirect_url,
            "ipnUrl": cfg.ipn_url,
            "extraData": extra_data,
            "requestType": cfg.request_type,
        }
        payload["signature"] = sign(canonical_string(CREATE_SIGNATURE_FIELDS, payload), cfg.secret_key)
        payload["lang"] = cfg.lang
        return payload

    def create_payment(self, order_id: str, amount: str, order_info: str) -> str:
        """
        Send the create request and return the gateway payUrl.

        Raises GatewayTimeout when the gateway does not answer in time
        (outcome unknown) and GatewayError for any other failure.
        """
        log = payment_logger(order_id)
        payload = self.build_create_request(order_id, amount, order_info)

        log.info(f"MoMo create request | amount={amount}")

        try:
            response = self.http.post(self.config.endpoint, json=payload, timeout=self.config.timeout)
        except requests.Timeout:
            log.warning("MoMo create request timed out")
            raise GatewayTimeout("Payment gateway did not respond in time")
        except requests.RequestException as e:
            log.error(f"MoMo unreachable: {e}")
            raise GatewayError("Payment gateway unreachable")

        try:
            data = response.json()
        except ValueError:
            data = {}

        pay_url = data.get("payUrl") if isinstance(data, dict) else None
        if not pay_url:
            log.error(
                f"MoMo returned no payUrl | http={response.status_code} "
                f"| resultCode={data.get('resultCode') if isinstance(data, dict) else None}"
            )
            raise GatewayError("Payment gateway did not return a payUrl")

        log.info("MoMo payUrl received")
        return pay_url

    def verify_notification(self, payload: dict) -> bool:
        signature = payload.get("signature")
        if not signature:
            return False
        values = dict(payload)
        values["accessKey"] = self.config.access_key
        expected = sign(canonical_string(IPN_SIGNATURE_FIELDS, values), self.config.secret_key)
        return hmac.compare_digest(expected, str(signature))
