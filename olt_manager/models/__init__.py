from .olt import Olt
from .onu import Onu
from .discovery_run import DiscoveryRun
