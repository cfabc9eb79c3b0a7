import os
from pathlib import Path

from dotenv import load_dotenv
from cryptography.fernet import Fernet
from pydantic_settings import BaseSettings


PROJECT_ROOT = Path(__file__).resolve().parents[2]
ENV_PATH = PROJECT_ROOT / ".env"


def _generate_fernet_key() -> str:
    return Fernet.generate_key().decode()


def _ensure_env_file() -> None:
    """Ensure .env exists with required keys; create defaults if missing.

    - DATABASE_URL defaults to an absolute SQLite aiosqlite path under project root
    - ENCRYPTION_KEY is generated with Fernet if absent
    """
    if os.getenv("DATABASE_URL") and os.getenv("ENCRYPTION_KEY"):
        # 환경변수로 이미 주어진 경우 (컨테이너, 테스트) .env 를 건드리지 않음
        return

    default_db_url = f"sqlite+aiosqlite:///{(PROJECT_ROOT / 'olt.db').as_posix()}"
    default_key = _generate_fernet_key()

    existing_lines: list[str] = []
    if ENV_PATH.exists():
        existing_lines = ENV_PATH.read_text(encoding="utf-8").splitlines()

    # Load existing env into process for inspection
    load_dotenv(dotenv_path=ENV_PATH, override=False)

    db_url = os.getenv("DATABASE_URL") or default_db_url
    enc_key = os.getenv("ENCRYPTION_KEY") or default_key

    existing = "\n".join(existing_lines)
    needs_write = (not ENV_PATH.exists()) or ("DATABASE_URL=" not in existing) or ("ENCRYPTION_KEY=" not in existing)
    if needs_write:
        content = [
            f"DATABASE_URL={db_url}",
            f"ENCRYPTION_KEY={enc_key}",
        ]
        ENV_PATH.write_text("\n".join(content) + "\n", encoding="utf-8")

    # Ensure process env has final values for BaseSettings
    os.environ.setdefault("DATABASE_URL", db_url)
    os.environ.setdefault("ENCRYPTION_KEY", enc_key)


class Settings(BaseSettings):
    DATABASE_URL: str
    ENCRYPTION_KEY: str
    LOG_LEVEL: str = "INFO"

    # 백그라운드 디스커버리 루프
    DISCOVERY_AUTOSTART: bool = True
    DISCOVERY_CYCLE_DELAY: float = 5.0
    DISCOVERY_ERROR_BACKOFF: float = 30.0
    DISCOVERY_BATCH_SIZE: int = 20

    # ONU 상세정보 수집 워커
    ENRICHMENT_MAX_CONCURRENCY: int = 3
    ENRICHMENT_MAX_ATTEMPTS: int = 3
    ENRICHMENT_IDLE_INTERVAL: float = 1.0

    # ZTE 벌크 수집 (경험적으로 정한 값)
    ZTE_SESSION_POOL_SIZE: int = 8
    ZTE_DETAIL_PARALLELISM: int = 5

    TELNET_CONNECT_TIMEOUT: float = 15.0
    TELNET_COMMAND_TIMEOUT: float = 6.0
    TELNET_LIST_TIMEOUT: float = 60.0

    SNMP_TIMEOUT: float = 5.0
    SNMP_RETRIES: int = 2

    # detail-info 이력 테이블에서 "시각 없음"을 나타내는 값
    DETAIL_TIMESTAMP_SENTINEL: str = r"^0000-00-00"

    class Config:
        env_file = str(ENV_PATH)


# Prepare environment and then instantiate Settings
_ensure_env_file()
settings = Settings()  # type: ignore[call-arg]
