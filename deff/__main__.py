"""Module entrypoint for ``python -m deff``.

All argument parsing and runtime setup happen in ``deff.cli``.
"""

from .cli import main


if __name__ == "__main__":
    main()
