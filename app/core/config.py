import os
from dataclasses import dataclass
from dotenv import load_dotenv

load_dotenv()


def env_flag(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


# -------- AVAILABILITY --------
# Behaviour of the availability check when the bookings lookup itself fails.
# False (default) reports the room as unavailable.
def availability_fail_open() -> bool:
    return env_flag("AVAILABILITY_FAIL_OPEN", False)


# -------- MOMO GATEWAY --------
@dataclass(frozen=True)
class MomoConfig:
    partner_code: str
    access_key: str
    secret_key: str
    endpoint: str = "https://test-payment.momo.vn/v2/gateway/api/create"
    redirect_url: str = "http://localhost:8000/payment/momo/return"
    ipn_url: str = "http://localhost:8000/payment/momo/notify"
    request_type: str = "captureWallet"
    lang: str = "vi"
    timeout: float = 10.0
    verify_ipn_signature: bool = False

    @classmethod
    def from_env(cls) -> "MomoConfig":
        return cls(
            partner_code=os.getenv("MOMO_PARTNER_CODE", "MOMO"),
            access_key=os.getenv("MOMO_ACCESS_KEY", ""),
            secret_key=os.getenv("MOMO_SECRET_KEY", ""),
            endpoint=os.getenv("MOMO_ENDPOINT", cls.endpoint),
            redirect_url=os.getenv("MOMO_REDIRECT_URL", cls.redirect_url),
            ipn_url=os.getenv("MOMO_IPN_URL", cls.ipn_url),
            request_type=os.getenv("MOMO_REQUEST_TYPE", cls.request_type),
            lang=os.getenv("MOMO_LANG", cls.lang),
            timeout=float(os.getenv("MOMO_TIMEOUT_SECONDS", cls.timeout)),
            verify_ipn_signature=env_flag("MOMO_VERIFY_IPN_SIGNATURE", False),
        )
