"""
Runtime configuration, read from the environment.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List

DEFAULT_ARTIFACTS_DIR = Path(__file__).resolve().parent.parent / "contracts" / "build"


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or raw == "":
        return default
    return float(raw)


@dataclass
class Settings:
    """Service settings."""
    rpc_timeout: float = 30.0            # seconds per RPC call
    receipt_timeout: float = 120.0       # seconds to wait for a receipt
    data_dir: str = "~/.htlc_bridge"
    artifacts_dir: str = str(DEFAULT_ARTIFACTS_DIR)
    pk_encryption_key: str = ""
    jwt_secret_key: str = ""
    jwt_algorithm: str = "HS256"
    log_level: str = "INFO"
    cors_origins: List[str] = field(default_factory=lambda: ["*"])

    @classmethod
    def from_env(cls) -> "Settings":
        origins = os.environ.get("HTLC_CORS_ORIGINS", "*")
        return cls(
            rpc_timeout=_env_float("HTLC_RPC_TIMEOUT", 30.0),
            receipt_timeout=_env_float("HTLC_RECEIPT_TIMEOUT", 120.0),
            data_dir=os.environ.get("HTLC_DATA_DIR", "~/.htlc_bridge"),
            artifacts_dir=os.environ.get("HTLC_ARTIFACTS_DIR", str(DEFAULT_ARTIFACTS_DIR)),
            pk_encryption_key=os.environ.get("HTLC_PK_ENCRYPTION_KEY", ""),
            jwt_secret_key=os.environ.get("JWT_SECRET_KEY", ""),
            jwt_algorithm=os.environ.get("JWT_ALGORITHM", "HS256"),
            log_level=os.environ.get("HTLC_LOG_LEVEL", "INFO").upper(),
            cors_origins=[o.strip() for o in origins.split(",") if o.strip()],
        )

    @property
    def data_path(self) -> Path:
        return Path(os.path.expanduser(self.data_dir))


_settings = None


def get_settings() -> Settings:
    """Load settings once per process."""
    global _settings
    if _settings is None:
        _settings = Settings.from_env()
    return _settings


def reset_settings(settings: Settings = None):
    """Replace the cached settings (tests, reconfiguration)."""
    global _settings
    _settings = settings
