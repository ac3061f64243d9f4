"""Run the meraki-rma CLI from a source checkout.

`python -m main serve` works without `pip install -e .`: the packages live
under `src/`, which is prepended to `sys.path` before the CLI is imported.
"""

from __future__ import annotations

import sys
from pathlib import Path

SRC_DIR = Path(__file__).resolve().parent / "src"


def main(argv: list[str] | None = None) -> None:
    if str(SRC_DIR) not in sys.path:
        sys.path.insert(0, str(SRC_DIR))

    from cli.main import app  # noqa: PLC0415

    app(args=argv, prog_name="meraki-rma")


if __name__ == "__main__":
    main()
