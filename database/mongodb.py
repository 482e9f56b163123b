from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo.errors import OperationFailure
from typing import Optional
import logging

logger = logging.getLogger(__name__)

class Database:
    client: Optional[AsyncIOMotorClient] = None
    db: Optional[AsyncIOMotorDatabase] = None

    async def connect(self, mongo_url: str, db_name: str):
        """Connect to MongoDB"""
        try:
            self.client = AsyncIOMotorClient(mongo_url)
            self.db = self.client[db_name]
            # Verify connection
            await self.client.admin.command('ping')
            logger.info(f"Connected to MongoDB database: {db_name}")
        except Exception as e:
            logger.error(f"Failed to connect to MongoDB: {e}")
            raise

    async def disconnect(self):
        """Disconnect from MongoDB"""
        if self.client:
            self.client.close()
            logger.info("Disconnected from MongoDB")

    def get_db(self) -> AsyncIOMotorDatabase:
        """Get database instance"""
        if self.db is None:
            raise Exception("Database not connected")
        return self.db

db = Database()

async def get_database() -> AsyncIOMotorDatabase:
    return db.get_db()


async def ensure_indexes(database: AsyncIOMotorDatabase) -> None:
    """Create the indexes for invoices and expenses"""
    from models.invoice import INVOICES_INDEXES
    from models.expense import EXPENSES_INDEXES

    for collection_name, specs in (("invoices", INVOICES_INDEXES), ("expenses", EXPENSES_INDEXES)):
        for idx_spec in specs:
            try:
                await database[collection_name].create_index(
                    idx_spec["keys"],
                    unique=idx_spec.get("unique", False),
                    name=idx_spec["name"]
                )
            except OperationFailure as e:
                # Same name with different options, left for a manual migration
                logger.warning(f"Index {collection_name}.{idx_spec['name']} skipped: {e}")

    logger.info("Indexes ensured for invoices and expenses")
