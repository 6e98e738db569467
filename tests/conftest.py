"""Pytest bootstrap for local source imports.

Test modules live in nested directories without ``__init__.py`` files, so the
repository root is put on ``sys.path`` to make ``import docsearch`` resolve to
this checkout rather than an installed copy.
"""

from __future__ import annotations

import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parent.parent

if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))
