from pymongo import MongoClient

from logger import get_logger

logger = get_logger(__name__)


class MongoDB:
    def __init__(self, uri, db_name, client: MongoClient = None):
        """Initializes the MongoDB client.

        Args:
            uri: MongoDB connection URI (MONGO_URI)
            db_name: Database name (MONGO_DB_NAME)
            client: Pre-built client, skips the connection check
        """
        self.uri = uri
        self.db_name = db_name

        if client is not None:
            self.client = client
            self.db = self.client[self.db_name]
            return

        try:
            self.client = MongoClient(self.uri, tz_aware=True)
            self.db = self.client[self.db_name]
            # Test connection
            self.client.server_info()
            logger.info(f"Connected to MongoDB database: {self.db_name}")
        except Exception as e:
            logger.exception(f"Failed to connect to MongoDB: {e}")
            raise

    def get_collection(self, collection_name):
        """Returns the collection with the given name."""
        return self.db[collection_name]

    def close(self):
        """Closes the MongoDB connection."""
        if self.client:
            self.client.close()
            logger.info("MongoDB connection closed.")
