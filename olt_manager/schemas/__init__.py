from .olt import Olt, OltCreate, OltUpdate, OltTarget
from .onu import Onu, OnuDetail, DiscoveredOnu, OnuStatus
from .discovery_run import DiscoveryRun
from .msg import Msg
