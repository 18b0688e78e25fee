import hashlib
import hmac
from unittest.mock import Mock

import pytest
import requests

from app.core.exceptions import GatewayError, GatewayTimeout
from app.utils.momo_client import MomoClient, canonical_string, sign, IPN_SIGNATURE_FIELDS


def test_create_request_signature_uses_gateway_field_order(momo_client, momo_config):
    payload = momo_client.build_create_request("MOMO123", "1350000", "Room booking 101")

    raw = (
        f"accessKey={momo_config.access_key}&amount=1350000&extraData="
        f"&ipnUrl={momo_config.ipn_url}&orderId=MOMO123&orderInfo=Room booking 101"
        f"&partnerCode=MOMO&redirectUrl={momo_config.redirect_url}"
        f"&requestId=MOMO123&requestType=captureWallet"
    )
    expected = hmac.new(momo_config.secret_key.encode(), raw.encode(), hashlib.sha256).hexdigest()

    assert payload["signature"] == expected
    assert payload["signature"] == payload["signature"].lower()
    assert payload["lang"] == "vi"
    assert payload["amount"] == "1350000"
    assert payload["requestId"] == payload["orderId"] == "MOMO123"


def test_create_request_has_all_wire_fields(momo_client):
    payload = momo_client.build_create_request("MOMO1", "100", "info")
    assert set(payload) == {
        "partnerCode", "accessKey", "requestId", "amount", "orderId", "orderInfo",
        "redirectUrl", "ipnUrl", "extraData", "requestType", "signature", "lang",
    }


def test_order_ids_are_unique(momo_client):
    ids = {momo_client.new_order_id() for _ in range(200)}
    assert len(ids) == 200
    assert all(i.startswith("MOMO") for i in ids)


def test_create_payment_returns_pay_url(momo_client, gateway_http, momo_config):
    pay_url = momo_client.create_payment("MOMO1", "100", "info")

    assert pay_url == "https://gateway.test/pay/abc"
    args, kwargs = gateway_http.post.call_args
    assert args[0] == momo_config.endpoint
    assert kwargs["timeout"] == momo_config.timeout
    assert kwargs["json"]["orderId"] == "MOMO1"


def test_missing_pay_url_is_a_gateway_error(momo_config):
    http = Mock()
    http.post.return_value = Mock(status_code=200, json=Mock(return_value={"resultCode": 22, "message": "bad"}))

    with pytest.raises(GatewayError):
        MomoClient(momo_config, http=http).create_payment("MOMO1", "100", "info")


def test_non_json_response_is_a_gateway_error(momo_config):
    http = Mock()
    http.post.return_value = Mock(status_code=502, json=Mock(side_effect=ValueError("no json")))

    with pytest.raises(GatewayError):
        MomoClient(momo_config, http=http).create_payment("MOMO1", "100", "info")


def test_timeout_is_reported_as_unknown(momo_config):
    http = Mock()
    http.post.side_effect = requests.Timeout("slow")

    with pytest.raises(GatewayTimeout):
        MomoClient(momo_config, http=http).create_payment("MOMO1", "100", "info")


def test_connection_error_is_a_gateway_error(momo_config):
    http = Mock()
    http.post.side_effect = requests.ConnectionError("refused")

    with pytest.raises(GatewayError) as exc:
        MomoClient(momo_config, http=http).create_payment("MOMO1", "100", "info")
    assert not isinstance(exc.value, GatewayTimeout)


def signed_ipn(config, **overrides):
    body = {
        "partnerCode": "MOMO",
        "orderId": "MOMO1",
        "requestId": "MOMO1",
        "amount": 1350000,
        "orderInfo": "Room booking 101",
        "orderType": "momo_wallet",
        "transId": 4088878653,
        "resultCode": 0,
        "message": "Successful.",
        "payType": "qr",
        "responseTime": 1721720663942,
        "extraData": "",
    }
    body.update(overrides)
    values = dict(body, accessKey=config.access_key)
    body["signature"] = sign(canonical_string(IPN_SIGNATURE_FIELDS, values), config.secret_key)
    return body


def test_verify_notification_accepts_valid_signature(momo_client, momo_config):
    assert momo_client.verify_notification(signed_ipn(momo_config))


def test_verify_notification_rejects_tampered_body(momo_client, momo_config):
    body = signed_ipn(momo_config)
    body["amount"] = 1
    assert not momo_client.verify_notification(body)


def test_verify_notification_rejects_missing_signature(momo_client, momo_config):
    body = signed_ipn(momo_config)
    del body["signature"]
    assert not momo_client.verify_notification(body)


def test_string_and_int_fields_sign_the_same(momo_client, momo_config):
    body = signed_ipn(momo_config)
    as_query = {k: str(v) for k, v in body.items()}
    assert momo_client.verify_notification(as_query)
