from . import crud_olt as olt
from . import crud_onu as onu
from . import crud_discovery_run as discovery_run
