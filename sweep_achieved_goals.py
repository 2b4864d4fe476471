#!/usr/bin/env python3
"""
Flag savings goals whose saved amount has reached the target.
Meant to run once a day from a scheduler.
Usage: python sweep_achieved_goals.py
"""

import asyncio
import logging
from app.core.database import AsyncSessionLocal, engine
from app.crud.savings_goal import mark_achieved_goals
from app.models import user, savings_deposit, notification  # noqa: F401

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

async def sweep() -> int:
    logger.info("💰 Checking savings goals progress...")
    async with AsyncSessionLocal() as session:
        try:
            achieved_count = await mark_achieved_goals(session)
        except Exception as e:
            logger.error(f"❌ Savings goals check failed: {e}")
            raise
    logger.info(f"✅ Checked savings goals, {achieved_count} newly achieved")
    return achieved_count

async def main():
    try:
        await sweep()
    finally:
        await engine.dispose()

if __name__ == "__main__":
    asyncio.run(main())
