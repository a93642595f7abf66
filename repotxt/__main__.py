"""Module entrypoint for ``python -m repotxt``.

Argument parsing and session setup happen in ``repotxt.cli``.
"""

import sys

from .cli import main


if __name__ == "__main__":
    sys.exit(main())
