import asyncio
import sys
import os

# Add project root to path
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sqlalchemy import delete
from db.session import AsyncSessionLocal, execute, commit
from models.progress import ProgressRecord
from core.exceptions import AppError
from core.logger import logger


async def reset_progress():
    print("⚠️  WARNING: This will DELETE ALL PROGRESS RECORDS (lesson completions and quiz attempts).")
    print("Users, lessons and quizzes are kept; leaderboards and analytics start from zero.")
    confirm = input("Type 'CONFIRM' to proceed: ")

    if confirm != "CONFIRM":
        print("Operation cancelled.")
        return

    async with AsyncSessionLocal() as session:
        try:
            print("Cleaning progress_records table...")
            result = await execute(session, delete(ProgressRecord))
            await commit(session)
            logger.info("Progress records reset", deleted=result.rowcount)
            print(f"✅ Removed {result.rowcount} progress records.")

        except AppError as e:
            await session.rollback()
            print(f"❌ Error resetting progress: {e.message}")
            logger.error("Error resetting progress", error=e.message)

if __name__ == "__main__":
    asyncio.run(reset_progress())
