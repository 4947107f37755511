"""Allow ``python -m stencil``."""

from stencil.cli import main

main()
