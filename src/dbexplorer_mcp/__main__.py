"""Console entry point: ``python -m dbexplorer_mcp`` or ``dbexplorer-mcp``."""

import asyncio

from .server import main


def run() -> None:
    asyncio.run(main())


if __name__ == "__main__":
    run()
