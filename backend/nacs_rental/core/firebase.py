"""
Firebase integration for NACS Car Rental
Firestore database and Firebase Authentication
"""
import firebase_admin
from firebase_admin import credentials, firestore, auth
from google.api_core import exceptions as gcp_exceptions
from google.cloud import firestore as fs
from typing import Optional, Dict, Any, List
from datetime import datetime, timezone
import copy
import logging
import uuid

from nacs_rental.core.config import settings

logger = logging.getLogger(__name__)


# ==================== Collection References ====================
class Collections:
    """Firestore collection names"""
    USERS = "users"
    CAR_LISTINGS = "car-listings"
    BOOKINGS = "bookings"


# ==================== Mock Firestore ====================

def _resolve_server_timestamps(value: Any, now: datetime) -> Any:
    """Replace SERVER_TIMESTAMP sentinels the way the Firestore backend would"""
    if value is fs.SERVER_TIMESTAMP:
        return now
    if isinstance(value, dict):
        return {k: _resolve_server_timestamps(v, now) for k, v in value.items()}
    if isinstance(value, list):
        return [_resolve_server_timestamps(v, now) for v in value]
    return value


def _sample_listing(listing_id: str, name: str, price: str, category: str, passengers: int,
                    bags: int, transmission: str, is_promo: bool, priority: int,
                    features: List[str], updated: datetime) -> Dict[str, Any]:
    return {
        'id': listing_id,
        'name': name,
        'price': price,
        'category': category,
        'passengers': str(passengers),
        'bags': str(bags),
        'transmission': transmission,
        'isPromo': is_promo,
        'priorityLevel': priority,
        'image': f'/images/fleet/{listing_id}.jpg',
        'features': features,
        'createdDate': datetime(2024, 1, 15, tzinfo=timezone.utc),
        'updatedDate': updated,
    }


class MockFirestoreClient:
    """Mock Firestore client for development without Firebase credentials"""

    def __init__(self, seed: bool = True):
        self._data: Dict[str, Dict[str, Dict[str, Any]]] = {}
        if seed:
            self._initialize_mock_data()
        logger.info("🔧 Using Mock Firestore Client for development")

    def _initialize_mock_data(self):
        """Initialize with sample fleet and user data for development"""
        self._data[Collections.CAR_LISTINGS] = {
            'group-f-auv': _sample_listing(
                'group-f-auv', 'Group F - AUV (7 seater) A/T', '₱ 3,350', 'SUV', 7, 4, 'Automatic',
                False, 4, ['ABS', 'Audio System', 'USB port', 'Fuel Type - Diesel'],
                datetime(2024, 2, 1, tzinfo=timezone.utc),
            ),
            'group-e-sedan': _sample_listing(
                'group-e-sedan', 'Group E - Sedan (5 seater) A/T', '₱ 2,800', 'Sedan', 5, 3, 'Automatic',
                True, 5, ['ABS', 'Air Conditioning', 'Power Steering'],
                datetime(2024, 2, 3, tzinfo=timezone.utc),
            ),
            'group-d-hatchback': _sample_listing(
                'group-d-hatchback', 'Group D - Hatchback (5 seater) M/T', '₱ 2,200', 'Hatchback', 5, 2,
                'Manual', False, 3, ['ABS', 'Air Conditioning', 'Fuel Type - Gasoline'],
                datetime(2024, 2, 2, tzinfo=timezone.utc),
            ),
            'group-a-van': _sample_listing(
                'group-a-van', 'Group A - Van (15 seater) A/T', '₱ 4,500', 'Van', 15, 8, 'Automatic',
                False, 2, ['Dual Air Conditioning', 'Audio System'],
                datetime(2024, 1, 28, tzinfo=timezone.utc),
            ),
        }
        self._data[Collections.USERS] = {
            'mock-user-id': {
                'uid': 'mock-user-id',
                'email': 'test@example.com',
                'name': 'Test User',
                'role': 'user',
                'isVerified': True,
            },
            'mock-admin-id': {
                'uid': 'mock-admin-id',
                'email': 'admin@example.com',
                'name': 'Admin User',
                'role': 'admin',
                'isVerified': True,
            },
        }

    def collection(self, name: str):
        """Return a mock collection"""
        return MockCollection(name, self._data)

    def document(self, path: str):
        """Return a mock document"""
        collection_name, doc_id = path.split('/', 1)
        return MockDocument(collection_name, doc_id, self._data)

    def transaction(self, **kwargs):
        """Return a mock transaction usable with firestore.transactional"""
        return MockTransaction()


class MockTransaction:
    """
    Mock transaction driven by firestore.transactional.
    Reads go straight to the store; writes are buffered and applied on commit.
    """

    _max_attempts = 1
    _read_only = False

    def __init__(self):
        self._id = None
        self._writes = []

    def _clean_up(self):
        self._writes = []
        self._id = None

    def _begin(self, retry_id=None):
        self._id = uuid.uuid4().bytes

    def _commit(self):
        writes, self._writes = self._writes, []
        for write in writes:
            write()
        self._id = None
        return []

    def _rollback(self):
        self._clean_up()

    def update(self, reference, field_updates: dict, **kwargs):
        self._writes.append(lambda: reference.update(field_updates))

    def set(self, reference, document_data: dict, merge: bool = False):
        self._writes.append(lambda: reference.set(document_data, merge=merge))


class MockQuery:
    """Mock Firestore query supporting the filters this backend issues"""

    _OPERATORS = {
        '==': lambda a, b: a == b,
        '!=': lambda a, b: a != b,
        '>': lambda a, b: a is not None and a > b,
        '>=': lambda a, b: a is not None and a >= b,
        '<': lambda a, b: a is not None and a < b,
        '<=': lambda a, b: a is not None and a <= b,
        'in': lambda a, b: a in b,
    }

    def __init__(self, name: str, data_store: dict, filters=None, ordering=None, limit_count=None):
        self.name = name
        self._data = data_store
        self._filters = list(filters or [])
        self._ordering = list(ordering or [])
        self._limit = limit_count

    def where(self, *args, **kwargs):
        """Mock where query (positional triple or filter=FieldFilter)"""
        field_filter = kwargs.get('filter')
        if field_filter is not None:
            condition = (field_filter.field_path, field_filter.op_string, field_filter.value)
        else:
            condition = tuple(args)
        return MockQuery(self.name, self._data, self._filters + [condition], self._ordering, self._limit)

    def order_by(self, field: str, direction: str = "ASCENDING", **kwargs):
        """Mock order_by query"""
        return MockQuery(self.name, self._data, self._filters, self._ordering + [(field, direction)], self._limit)

    def limit(self, count: int):
        """Mock limit query"""
        return MockQuery(self.name, self._data, self._filters, self._ordering, count)

    def stream(self):
        """Return matching documents"""
        docs = []
        for doc_id, doc_data in self._data.get(self.name, {}).items():
            if all(self._OPERATORS[op](doc_data.get(field), value) for field, op, value in self._filters):
                docs.append(MockDocumentSnapshot(doc_id, copy.deepcopy(doc_data)))

        for field, direction in reversed(self._ordering):
            present = [d for d in docs if d.to_dict().get(field) is not None]
            missing = [d for d in docs if d.to_dict().get(field) is None]
            present.sort(key=lambda d: d.to_dict()[field], reverse=(direction == "DESCENDING"))
            docs = present + missing

        if self._limit is not None:
            docs = docs[:self._limit]
        return docs

    def get(self):
        return self.stream()


class MockCollection(MockQuery):
    """Mock Firestore collection"""

    def __init__(self, name: str, data_store: dict):
        super().__init__(name, data_store)
        if name not in self._data:
            self._data[name] = {}

    def document(self, doc_id: Optional[str] = None):
        """Return a mock document (auto-generated id when omitted)"""
        return MockDocument(self.name, doc_id or uuid.uuid4().hex, self._data)

    def add(self, data: dict):
        """Add a document to collection"""
        doc_ref = self.document()
        doc_ref.set(data)
        return (datetime.now(timezone.utc), doc_ref)


class MockDocument:
    """Mock Firestore document reference"""

    def __init__(self, collection_name: str, doc_id: str, data_store: dict):
        self.collection_name = collection_name
        self.id = doc_id
        self.path = f"{collection_name}/{doc_id}"
        self._data = data_store

    def get(self, **kwargs):
        """Get document data"""
        doc_data = self._data.get(self.collection_name, {}).get(self.id)
        return MockDocumentSnapshot(self.id, copy.deepcopy(doc_data))

    def set(self, data: dict, merge: bool = False):
        """Set document data"""
        resolved = _resolve_server_timestamps(copy.deepcopy(data), datetime.now(timezone.utc))
        collection = self._data.setdefault(self.collection_name, {})
        if merge and self.id in collection:
            collection[self.id].update(resolved)
        else:
            collection[self.id] = resolved

    def update(self, data: dict):
        """Update document data; missing documents raise like Firestore does"""
        collection = self._data.setdefault(self.collection_name, {})
        if self.id not in collection:
            raise gcp_exceptions.NotFound(f"No document to update: {self.path}")
        resolved = _resolve_server_timestamps(copy.deepcopy(data), datetime.now(timezone.utc))
        collection[self.id].update(resolved)

    def delete(self):
        """Delete document"""
        self._data.get(self.collection_name, {}).pop(self.id, None)


class MockDocumentSnapshot:
    """Mock document snapshot"""

    def __init__(self, doc_id: str, data: Optional[dict]):
        self.id = doc_id
        self._data = data

    @property
    def exists(self) -> bool:
        return self._data is not None

    def to_dict(self):
        """Get document data as dict"""
        return self._data


class MockAuth:
    """Mock Firebase Auth for development"""

    ADMIN_TOKEN = "mock-admin-token"

    @staticmethod
    def verify_id_token(token: str):
        """Mock token verification - the admin token maps to the admin user, anything else to the test user"""
        logger.warning("🔧 Using mock auth - accepting all tokens in development mode")
        if token == MockAuth.ADMIN_TOKEN:
            return {'uid': 'mock-admin-id', 'email': 'admin@example.com', 'name': 'Admin User'}
        return {
            'uid': 'mock-user-id',
            'email': 'test@example.com',
            'name': 'Test User'
        }


class FirebaseClient:
    """Firebase Admin SDK client singleton"""

    _instance = None
    _initialized = False

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super(FirebaseClient, cls).__new__(cls)
        return cls._instance

    def __init__(self):
        if not self._initialized:
            self._initialize_firebase()
            self._initialized = True

    def _initialize_firebase(self):
        """
        Initialize Firebase Admin SDK
        Supports three modes:
        1. Mock mode (USE_MOCK_FIREBASE=True) - for development without credentials
        2. GOOGLE_APPLICATION_CREDENTIALS env var pointing to JSON file (production recommended)
        3. FIREBASE_CREDENTIALS_JSON env var with inline JSON string (alternative)
        """
        import json
        from dotenv import load_dotenv

        # Load .env file for development
        load_dotenv()

        if settings.USE_MOCK_FIREBASE:
            logger.warning("🔧 Running in MOCK mode - using in-memory database (no real Firebase)")
            self._db = MockFirestoreClient()
            self._auth_client = MockAuth()
            return

        try:
            google_creds_path = settings.GOOGLE_APPLICATION_CREDENTIALS

            if google_creds_path:
                logger.info(f"Loading Firebase credentials from GOOGLE_APPLICATION_CREDENTIALS: {google_creds_path}")
                cred = credentials.Certificate(google_creds_path)
            else:
                firebase_creds_json = settings.FIREBASE_CREDENTIALS_JSON

                if firebase_creds_json:
                    logger.info("Loading Firebase credentials from FIREBASE_CREDENTIALS_JSON environment variable")
                    cred = credentials.Certificate(json.loads(firebase_creds_json))
                else:
                    raise ValueError(
                        "Firebase credentials not found. Please set either:\n"
                        "  - USE_MOCK_FIREBASE=True (for development), or\n"
                        "  - GOOGLE_APPLICATION_CREDENTIALS=/path/to/firebase-key.json, or\n"
                        "  - FIREBASE_CREDENTIALS_JSON='{...}' (inline JSON string)"
                    )

            firebase_admin.initialize_app(cred)

            self._db = firestore.client()
            self._auth_client = auth

            logger.info("✅ Firebase initialized successfully")

        except Exception as e:
            logger.error(f"❌ Failed to initialize Firebase: {e}")
            raise

    @property
    def db(self):
        """Get Firestore client instance"""
        return self._db

    @property
    def auth_client(self):
        """Get Firebase Auth client"""
        return self._auth_client


def get_db():
    """Firestore client, initialized on first use"""
    return FirebaseClient().db


def get_auth_client():
    """Firebase Auth client, initialized on first use"""
    return FirebaseClient().auth_client


# ==================== Authentication Functions ====================

def verify_id_token(token: str) -> Dict[str, Any]:
    """
    Verify Firebase ID token and return decoded claims.

    Raises:
        ValueError: If token is invalid or expired
    """
    try:
        return get_auth_client().verify_id_token(token)
    except auth.ExpiredIdTokenError:
        raise ValueError("Token has expired")
    except auth.InvalidIdTokenError:
        raise ValueError("Invalid ID token")
    except Exception as e:
        logger.error(f"Token verification error: {e}")
        raise ValueError(f"Token verification failed: {str(e)}")


def get_user(uid: str) -> Optional[Dict[str, Any]]:
    """Get user profile from Firestore by UID, None if missing"""
    try:
        user_doc = get_db().collection(Collections.USERS).document(uid).get()

        if user_doc.exists:
            return user_doc.to_dict()
        return None
    except Exception as e:
        logger.error(f"Error fetching user {uid}: {e}")
        return None
