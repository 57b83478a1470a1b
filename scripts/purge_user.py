import asyncio
import sys
import os

# Add project root to path
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from db.session import AsyncSessionLocal
from services.user_service import UserService
from core.exceptions import AppError
from core.logger import logger


async def purge_user(user_id: int):
    print(f"⚠️  WARNING: This will DELETE user {user_id} and ALL of their progress records.")
    confirm = input("Type 'CONFIRM' to proceed: ")

    if confirm != "CONFIRM":
        print("Operation cancelled.")
        return

    async with AsyncSessionLocal() as session:
        try:
            await UserService(session).delete_user(user_id)
            print(f"✅ User {user_id} removed.")
        except AppError as e:
            print(f"❌ {e.message}")
            logger.error("Error purging user", user_id=user_id, error=e.message)

if __name__ == "__main__":
    if len(sys.argv) != 2 or not sys.argv[1].isdigit():
        print("Usage: python scripts/purge_user.py <user_id>")
        sys.exit(1)
    asyncio.run(purge_user(int(sys.argv[1])))
