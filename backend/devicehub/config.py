# devicehub/config.py
import os
from pydantic import BaseModel
from dotenv import load_dotenv

load_dotenv()  # Load environment variables from .env file


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("true", "1", "yes")


class Settings(BaseModel):
    # General app settings
    APP_NAME: str = "DeviceHub API"
    env: str = os.getenv("ENV", "dev")

    # Host & Port settings
    host: str = os.getenv("HOST", "0.0.0.0")
    port: int = int(os.getenv("PORT", "8000"))

    # CORS origins for the dashboard frontend
    CORS_ORIGINS: list[str] = [
        "http://localhost:8080",
        "http://127.0.0.1:8080",
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ] + [o for o in os.getenv("FRONTEND_URL", "").split(",") if o]

    # One-time login codes
    otp_expire_minutes: int = int(os.getenv("OTP_EXPIRE_MINUTES", "10"))
    otp_sweep_interval_sec: int = int(os.getenv("OTP_SWEEP_INTERVAL_SEC", "300"))
    # Return the generated code in the send-otp response (never enable in production)
    expose_otp: bool = _env_flag("EXPOSE_OTP", "true" if os.getenv("ENV", "dev") == "dev" else "false")

    # SMS gateway (OTP delivery). Without SMS_SECRET codes are only logged.
    sms_api_url: str = os.getenv("SMS_API_URL", "http://43.252.88.250/index.php/smsapi/httpapi/")
    sms_secret: str | None = os.getenv("SMS_SECRET")
    sms_sender: str = os.getenv("SMS_SENDER", "NIGHAI")
    sms_template_id: str = os.getenv("SMS_TEMPLATE_ID", "1207174264191607433")
    sms_route: str = os.getenv("SMS_ROUTE", "TA")
    sms_msgtype: str = os.getenv("SMS_MSGTYPE", "1")
    sms_timeout_sec: float = float(os.getenv("SMS_TIMEOUT_SEC", "10"))

    # Rate limiting (per client IP). Storage may point at redis:// for multi-worker deployments.
    rate_limit_enabled: bool = _env_flag("RATE_LIMIT_ENABLED", "true")
    rate_limit_storage_uri: str = os.getenv("RATE_LIMIT_STORAGE_URI", "memory://")
    rate_limit_global: str = os.getenv("RATE_LIMIT_GLOBAL", "1000 per 15 minutes")
    rate_limit_send_otp: str = os.getenv("RATE_LIMIT_SEND_OTP", "5 per 5 minutes")
    rate_limit_verify_otp: str = os.getenv("RATE_LIMIT_VERIFY_OTP", "10 per 5 minutes")

    # Devices & telemetry
    bulk_max_count: int = 1000
    telemetry_default_limit: int = int(os.getenv("TELEMETRY_DEFAULT_LIMIT", "50"))
    telemetry_max_limit: int = 500
    login_logs_max_limit: int = 1000

settings = Settings()  # Instantiate configuration
