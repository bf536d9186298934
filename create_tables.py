import asyncio

from eduplatform.database import init_db
# Import Models to register them with Base
from eduplatform.models import user, catalog, enrollment, assignment, timetable, forum, document

async def main():
    print("Initializing Database Tables...")
    try:
        await init_db()
        print("Tables created successfully (timetables, forum, ingestion jobs, question bank).")
    except Exception as e:
        print(f"Error creating tables: {e}")
        raise

if __name__ == "__main__":
    asyncio.run(main())
