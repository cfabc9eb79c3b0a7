"""
OLT 접속 비밀번호(텔넷, enable) 암복호화

DB 에는 Fernet 토큰만 저장하고, 드라이버에 넘기기 직전에만 복호화합니다.
"""
from typing import Optional

from cryptography.fernet import Fernet, InvalidToken

from olt_manager.core.config import settings
from olt_manager.services.olt.exceptions import OltConfigurationError

fernet = Fernet(settings.ENCRYPTION_KEY.encode())


def encrypt(secret: Optional[str]) -> Optional[str]:
    """평문 비밀번호 -> Fernet 토큰 (빈 값은 그대로)"""
    if not secret:
        return secret
    return fernet.encrypt(secret.encode()).decode()


def decrypt(token: Optional[str], label: str = "secret") -> Optional[str]:
    """Fernet 토큰 -> 평문.

    Raises:
        OltConfigurationError: ENCRYPTION_KEY 가 바뀌었거나 토큰이 손상된 경우
    """
    if not token:
        return None
    try:
        return fernet.decrypt(token.encode()).decode()
    except InvalidToken as e:
        raise OltConfigurationError(f"{label} 복호화 실패 (ENCRYPTION_KEY 확인 필요)") from e
