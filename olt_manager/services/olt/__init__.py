from .exceptions import (
    OltError,
    OltConnectionError,
    OltAuthenticationError,
    SnmpRequestError,
    OltProtocolError,
    OltConfigurationError,
    OltUnsupportedError,
    OltPartialFailure,
)
from .factory import OltDriverFactory
from .interface import OltDriver, Vendor

__all__ = [
    "OltError",
    "OltConnectionError",
    "OltAuthenticationError",
    "SnmpRequestError",
    "OltProtocolError",
    "OltConfigurationError",
    "OltUnsupportedError",
    "OltPartialFailure",
    "OltDriverFactory",
    "OltDriver",
    "Vendor",
]
