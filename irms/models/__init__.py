# irms/models/__init__.py
from irms.db.base import Base  # noqa: F401

from . import department  # noqa: F401
from . import category    # noqa: F401
from . import user        # noqa: F401
from . import incident    # noqa: F401
from . import risk        # noqa: F401
from . import task        # noqa: F401
from . import comment     # noqa: F401
from . import audit_log   # noqa: F401
