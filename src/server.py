"""Protean Engine runner for the commerce domain.

Starts the Engine that processes events asynchronously when the domain is
configured for async event processing (production overlay in domain.toml):
projectors and event handlers then run here instead of inside the request.

Usage:
    python src/server.py
"""

import argparse
import asyncio

from protean.server.engine import Engine


def _get_domain():
    from commerce.domain import commerce

    commerce.init()
    return commerce


async def run():
    engine = Engine(_get_domain())
    await engine.run()


def main():
    argparse.ArgumentParser(description="Commerce Engine runner").parse_args()
    asyncio.run(run())


if __name__ == "__main__":
    main()
