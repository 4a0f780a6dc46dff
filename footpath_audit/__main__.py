"""Allow ``python -m footpath_audit``."""

from .main import main

raise SystemExit(main())
