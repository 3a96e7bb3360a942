"""Entry point: ``python -m modgate``."""

import asyncio

from modgate.app import main

if __name__ == "__main__":
    asyncio.run(main())
