"""Allow ``python -m clawty``."""

from clawty.cli import app

app()
