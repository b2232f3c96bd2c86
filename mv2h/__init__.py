#!/usr/bin/env python
"""Top-level module for mv2h"""

# Import all submodules
from . import util
from . import music
from . import meter
from . import harmony
from . import multipitch
from . import voice
from . import value
from . import alignment
from . import score
from . import io

__version__ = '0.1'
