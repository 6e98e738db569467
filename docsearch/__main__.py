"""Module entrypoint for ``python -m docsearch``.

This keeps module-mode execution behavior identical to the console script.
All argument parsing and command dispatch happen in ``docsearch.cli``.
"""

from .cli import main


if __name__ == "__main__":
    raise SystemExit(main())
