"""Script de ejecución.

Permite ejecutar la CLI con `python -m main` durante desarrollo, además del
script `meraki-rma` instalado por pip.
"""

from __future__ import annotations

from cli.main import run


def main() -> None:
    run()


if __name__ == "__main__":
    main()
