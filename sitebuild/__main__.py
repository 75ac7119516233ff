"""Module entrypoint for ``python -m sitebuild``.

This keeps module-mode execution behavior identical to the console script.
All argument parsing and build setup happen in ``sitebuild.cli``.
"""

from .cli import main


if __name__ == "__main__":
    main()
