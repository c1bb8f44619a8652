"""Allow ``python -m bidding``."""

from bidding.cli import main

raise SystemExit(main())
