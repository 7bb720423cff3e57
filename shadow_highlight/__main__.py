"""Allow ``python -m shadow_highlight`` to run the command-line interface."""
from __future__ import annotations

from shadow_highlight.cli import main


if __name__ == "__main__":  # pragma: no cover - exercised via integration test
    raise SystemExit(main())
