"""Allow running as: python -m ticktick_cli"""

from ticktick_cli.server import main

main()
