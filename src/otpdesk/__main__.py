"""Allow ``python -m otpdesk``."""

from otpdesk.cli import main

main()
