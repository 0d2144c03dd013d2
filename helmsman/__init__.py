__title__ = 'helmsman'
__license__ = 'MIT'
# Placeholder, modified by dynamic-versioning.
__version__ = "0.0.0"

import logging

from .completions import *
from .consoles import *
from .context import *
from .descriptors import *
from .faults import *
from .nodes import *
from .registry import *
from .trees import *

VersionInfo = __import__("collections").namedtuple("VersionInfo", (
    "major",
    "minor",
    "micro",
    "releaselevel",
    "serial",
    "metadata"
))

# Placeholder, modified by dynamic-versioning.
version_info = VersionInfo(0, 0, 0, "final", 0, "")

# Silent unless the host configures logging.
logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = (
    "__title__",
    "__license__",
    "__version__",
    "version_info"
)

# Load the exposed API of the completions
__all__ += completions.__all__  # type: ignore[attr-defined]
# Load the exposed API of the consoles
__all__ += consoles.__all__  # type: ignore[attr-defined]
# Load the exposed API of the context
__all__ += context.__all__  # type: ignore[attr-defined]
# Load the exposed API of the descriptors
__all__ += descriptors.__all__  # type: ignore[attr-defined]
# Load the exposed API of the faults
__all__ += faults.__all__  # type: ignore[attr-defined]
# Load the exposed API of the nodes
__all__ += nodes.__all__  # type: ignore[attr-defined]
# Load the exposed API of the registry
__all__ += registry.__all__  # type: ignore[attr-defined]
# Load the exposed API of the trees
__all__ += trees.__all__  # type: ignore[attr-defined]
