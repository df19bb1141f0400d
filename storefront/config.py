from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

ROOT_DIR = Path(__file__).resolve().parents[1]  # .../package
load_dotenv(dotenv_path=ROOT_DIR / ".env")


def _get_env(*keys: str, default: str | None = None) -> str | None:
    for k in keys:
        v = os.getenv(k)
        if v is not None and str(v).strip() != "":
            return v.strip()
    return default


def _get_int(*keys: str, default: int | None = None) -> int | None:
    v = _get_env(*keys, default=None)
    if v is None:
        return default
    return int(v)


def _get_path(*keys: str, default: str) -> str:
    v = _get_env(*keys, default=default)
    return str(v)


@dataclass(frozen=True)
class Settings:
    db_path: str
    export_dir: str
    currency: str
    decimals: int
    payment_provider: str
    stripe_api_key: str
    success_url: str
    cancel_url: str
    bot_token: str
    log_level: str


def load_settings() -> Settings:
    return Settings(
        db_path=_get_path("DB_PATH", "DATABASE_PATH", default=str(ROOT_DIR / "data" / "storefront.db")),
        export_dir=_get_path("EXPORT_DIR", default=str(ROOT_DIR / "exports")),
        currency=(_get_env("CURRENCY", default="usd") or "usd").lower(),
        decimals=_get_int("DECIMALS", default=2),
        payment_provider=(_get_env("PAYMENT_PROVIDER", default="mock") or "mock").lower(),
        stripe_api_key=_get_env("STRIPE_API_KEY", "STRIPE_KEY", default="") or "",
        success_url=_get_env("SUCCESS_URL", default="http://localhost:3000/thanks") or "",
        cancel_url=_get_env("CANCEL_URL", default="http://localhost:3000/checkout") or "",
        bot_token=_get_env("BOT_TOKEN", "TELEGRAM_BOT_TOKEN", default="") or "",
        log_level=(_get_env("LOG_LEVEL", default="INFO") or "INFO").upper(),
    )


settings = load_settings()
