"""Allow ``python -m strata``."""

from .cli import main

main()
