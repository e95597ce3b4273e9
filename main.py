"""
Eden Registry client entry point.
Checks Registry health and lists agents for the configured cohort.
"""

import asyncio
import sys

from loguru import logger

from eden_registry.registry import RegistryClient
from eden_registry.services import ServiceError
from eden_registry.settings import global_settings


async def main(cohort: str | None = None) -> int:
    """Main function"""
    logger.info(f"Connecting to Registry at {global_settings.registry_base_url}...")

    async with RegistryClient(global_settings) as client:
        result = await client.get_agents_with_fallback_detection(cohort=cohort)
        status = client.get_health_status()
        logger.info(
            f"Registry enabled={status.is_enabled} healthy={status.is_healthy}"
        )

        if result.error:
            logger.warning(f"Registry fallback ({result.outcome.value}): {result.error}")
            return 1

        for agent in result.agents:
            logger.info(f"{agent.handle or agent.id}: {agent.name} [{agent.status}]")
        logger.info(f"Fetched {len(result.agents)} agents")
        return 0


if __name__ == "__main__":
    try:
        sys.exit(asyncio.run(main(sys.argv[1] if len(sys.argv) > 1 else None)))
    except ServiceError as e:
        logger.error(f"Registry client error: {e}")
        sys.exit(2)
