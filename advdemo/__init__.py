# Copyright (c) 2018-present, Royal Bank of Canada.
# All rights reserved.
#
# This source code is licensed under the license found in the
# LICENSE file in the root directory of this source tree.
#


import os

with open(os.path.join(os.path.dirname(__file__), 'VERSION')) as f:
    __version__ = f.read().strip()

from . import attacks  # noqa: F401
from .errors import AttackError  # noqa: F401
from .errors import InvalidShape  # noqa: F401
from .errors import InvalidIndex  # noqa: F401
from .errors import AttackExhausted  # noqa: F401
from .errors import NumericDivergence  # noqa: F401
from .oracle import ClassifierOracle  # noqa: F401
from .oracle import StripBackgroundClass  # noqa: F401
from .oracle import as_oracle  # noqa: F401
