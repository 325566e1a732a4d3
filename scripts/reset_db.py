import asyncio
import sys
from pathlib import Path

# Setup path
project_root = Path(__file__).parent.parent
sys.path.append(str(project_root))

from src.db.db_manager import db_manager

async def cleanup():
    print("Dropping all tables...")
    await db_manager.drop_db()
    print("Tables dropped.")

    print("Re-initializing DB...")
    await db_manager.init_db()
    print("DB Reset Complete.")

if __name__ == "__main__":
    asyncio.run(cleanup())
