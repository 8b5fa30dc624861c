from arango import ArangoClient
from arango.database import StandardDatabase
import logging

from aily.core.config import settings

logger = logging.getLogger(__name__)

COLLECTIONS = ['users', 'aily_instances', 'knowledge', 'teaching_sessions']


class DatabaseManager:
    """Singleton database manager for ArangoDB connections."""

    _instance = None
    _db = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def get_database(self) -> StandardDatabase:
        """Get or create database connection."""
        if self._db is None:
            self._connect()
        return self._db

    def _connect(self) -> None:
        """Establish connection to ArangoDB."""
        try:
            client = ArangoClient(hosts=settings.ARANGO_URL)

            # Connect to system database for setup
            sys_db = client.db(
                '_system',
                username=settings.ARANGO_USERNAME,
                password=settings.ARANGO_PASSWORD
            )

            if not sys_db.has_database(settings.ARANGO_DATABASE):
                sys_db.create_database(settings.ARANGO_DATABASE)
                logger.info(f"Created database: {settings.ARANGO_DATABASE}")

            self._db = client.db(
                settings.ARANGO_DATABASE,
                username=settings.ARANGO_USERNAME,
                password=settings.ARANGO_PASSWORD
            )

            self._ensure_collections()
            logger.info("Database connection established")

        except Exception as e:
            logger.error(f"Database connection failed: {e}")
            raise

    def _ensure_collections(self) -> None:
        """Create required collections and indexes if they don't exist."""
        for collection_name in COLLECTIONS:
            if not self._db.has_collection(collection_name):
                self._db.create_collection(collection_name)
                logger.info(f"Created collection: {collection_name}")

        self._db.collection('users').add_persistent_index(fields=['email'], unique=True)
        self._db.collection('aily_instances').add_persistent_index(fields=['user_id'], unique=True)
        self._db.collection('knowledge').add_persistent_index(fields=['agent_id', 'concept'], unique=True)
        self._db.collection('teaching_sessions').add_persistent_index(fields=['aily_id', 'created_at'])


# Database dependency for FastAPI
def get_db() -> StandardDatabase:
    """FastAPI dependency to get database instance."""
    return DatabaseManager().get_database()
