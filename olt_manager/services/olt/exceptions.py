"""
OLT 모듈용 커스텀 예외 클래스들
"""

class OltError(Exception):
    """OLT 모듈의 기본 예외 클래스"""
    pass

class OltConnectionError(OltError):
    """OLT 연결 거부/타임아웃 시 발생하는 예외"""
    pass

class OltAuthenticationError(OltConnectionError):
    """OLT 로그인 실패 시 발생하는 예외"""
    pass

class SnmpRequestError(OltConnectionError):
    """SNMP get/walk 실패 시 발생하는 예외 (원인 에러를 감쌈)"""

    def __init__(self, message: str, cause: object = None):
        super().__init__(message)
        self.cause = cause

class OltProtocolError(OltError):
    """예상하지 못했거나 파싱할 수 없는 응답"""
    pass

class OltConfigurationError(OltError):
    """OLT 설정 오류 (사용 가능한 프로토콜 없음 등)"""
    pass

class OltUnsupportedError(OltConfigurationError):
    """지원하지 않는 OLT 벤더"""
    pass

class OltPartialFailure(OltError):
    """속성 하나 또는 ONU 하나만 실패한 경우 (상위 작업은 계속 진행)"""
    pass


class DiscoveryError(Exception):
    """discovery 매니저 호출 시의 동기 검증 오류"""
    pass

class OltNotFoundError(DiscoveryError):
    pass

class DiscoveryShuttingDownError(DiscoveryError):
    pass
