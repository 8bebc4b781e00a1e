from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .errors import ConfigError

BASE_DIR = Path(__file__).resolve().parent

DEFAULT_TRACKING_URL_TEMPLATE = "https://tools.usps.com/go/TrackConfirmAction?tLabels={tracking_number}"


@dataclass(frozen=True)
class Settings:
    """Configuration container for the model, catalogs, promotion and runtime limits."""
    gemini_api_key: str
    gemini_model: str
    temperature: float
    max_output_tokens: int
    llm_timeout_sec: float
    prompts_dir: Path
    grounding_prompt_version: str
    orders_path: Path
    products_path: Path
    promo_timezone: str
    promo_start_hour: int
    promo_end_hour: int
    promo_code_prefix: str
    tracking_url_template: str
    max_sessions: int
    log_level: str


def load_settings() -> Settings:
    """Purpose: Load configuration from environment variables and defaults.
    Inputs/Outputs: No inputs; returns a validated Settings instance.
    Side Effects / State: Reads environment variables and resolves filesystem paths.
    Dependencies: Uses os.getenv, BASE_DIR and validate_settings.
    Failure Modes: Non-numeric numeric env values raise ValueError; an empty or
        out-of-range promotion window or an unknown time zone raises ConfigError.
    If Removed: The app cannot build its collaborators and fails at startup.
    Testing Notes: Verify defaults and overrides via monkeypatched environment.
    """
    # Resolve data and prompt paths, then build Settings.
    data_dir = BASE_DIR / "data"
    orders_path = os.getenv("ORDERS_PATH")
    products_path = os.getenv("PRODUCTS_PATH")

    settings = Settings(
        gemini_api_key=os.getenv("GEMINI_API_KEY", ""),
        gemini_model=os.getenv("GEMINI_MODEL", "gemini-2.5-flash"),
        temperature=float(os.getenv("LLM_TEMPERATURE", "0.6")),
        max_output_tokens=int(os.getenv("LLM_MAX_OUTPUT_TOKENS", "1024")),
        llm_timeout_sec=float(os.getenv("LLM_TIMEOUT_SEC", "30")),
        prompts_dir=(BASE_DIR / "prompts").resolve(),
        grounding_prompt_version=os.getenv("GROUNDING_PROMPT_VERSION", "v1"),
        orders_path=Path(orders_path) if orders_path else (data_dir / "orders.json").resolve(),
        products_path=Path(products_path) if products_path else (data_dir / "products.json").resolve(),
        promo_timezone=os.getenv("PROMO_TIMEZONE", "America/Los_Angeles"),
        promo_start_hour=int(os.getenv("PROMO_START_HOUR", "8")),
        promo_end_hour=int(os.getenv("PROMO_END_HOUR", "10")),
        promo_code_prefix=os.getenv("PROMO_CODE_PREFIX", "EARLY10-"),
        tracking_url_template=os.getenv("TRACKING_URL_TEMPLATE", DEFAULT_TRACKING_URL_TEMPLATE),
        max_sessions=int(os.getenv("MAX_SESSIONS", "50")),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
    )
    validate_settings(settings)
    return settings


def validate_settings(settings: Settings) -> None:
    """Reject settings that would make the promotion or model config meaningless."""
    if not 0 <= settings.promo_start_hour < settings.promo_end_hour <= 24:
        raise ConfigError(
            f"Promotion window [{settings.promo_start_hour}, {settings.promo_end_hour}) is not a valid hour range"
        )
    try:
        ZoneInfo(settings.promo_timezone)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ConfigError(f"Unknown promotion time zone: {settings.promo_timezone}") from exc
    if not 0.0 <= settings.temperature <= 2.0:
        raise ConfigError(f"LLM temperature out of range: {settings.temperature}")
    if "{tracking_number}" not in settings.tracking_url_template:
        raise ConfigError("TRACKING_URL_TEMPLATE must contain {tracking_number}")
