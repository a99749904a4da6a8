# python -m coldkey
from coldkey.scripts.cli import cli

cli()
