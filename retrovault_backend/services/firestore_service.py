"""
Firestore Data Service
Thin helpers over the Firebase Admin Firestore client for the nested and flat layouts
"""
import logging
from typing import Any, Dict, Iterable, List, Optional, Tuple

from google.cloud.firestore_v1.base_query import FieldFilter

from retrovault_backend.config import environment
from retrovault_backend.config.credentials import credential_manager
from retrovault_backend.models import USERS_COLLECTION

logger = logging.getLogger(__name__)

# (operation, document reference, data) where operation is 'set', 'update' or 'delete'
BatchOperation = Tuple[str, Any, Optional[Dict[str, Any]]]


class FirestoreService:
    """Shared read/write helpers used by migrations, verification and seeding"""

    def __init__(self, db=None):
        self._db = db

    @property
    def db(self):
        if self._db is None:
            self._db = credential_manager.get_firestore_client()
        return self._db

    # ==================== READS ====================

    def user_ref(self, user_id: str):
        return self.db.collection(USERS_COLLECTION).document(user_id)

    def get_user(self, user_id: str) -> Optional[Dict[str, Any]]:
        """Get a user profile document, or None if it does not exist"""
        snapshot = self.user_ref(user_id).get()
        if not snapshot.exists:
            return None
        return snapshot.to_dict() or {}

    def list_users(self) -> List[Any]:
        """All user profile snapshots"""
        return list(self.db.collection(USERS_COLLECTION).stream())

    def nested_collection(self, user_id: str, name: str):
        """Old layout: users/{uid}/{name}"""
        return self.user_ref(user_id).collection(name)

    def stream_nested(self, user_id: str, name: str) -> List[Any]:
        return list(self.nested_collection(user_id, name).stream())

    def query_by_user(self, collection: str, user_id: str) -> List[Any]:
        """Flat layout: every document in collection with userId == user_id"""
        query = self.db.collection(collection).where(filter=FieldFilter('userId', '==', user_id))
        return list(query.stream())

    def query_by_field(self, collection: str, field_name: str, value: Any) -> List[Any]:
        query = self.db.collection(collection).where(filter=FieldFilter(field_name, '==', value))
        return list(query.stream())

    def existing_nessie_ids(self, collection: str, user_id: str) -> set:
        """nessieId values already written to a flat collection for a user"""
        ids = set()
        for snapshot in self.query_by_user(collection, user_id):
            nessie_id = (snapshot.to_dict() or {}).get('nessieId')
            if nessie_id:
                ids.add(nessie_id)
        return ids

    # ==================== WRITES ====================

    def add_document(self, collection: str, data: Dict[str, Any]) -> str:
        """Create a document with a generated id and return that id"""
        _, doc_ref = self.db.collection(collection).add(data)
        return doc_ref.id

    def new_document_ref(self, collection: str):
        """Reference with a generated id, for batched writes"""
        return self.db.collection(collection).document()

    def commit_in_batches(self, operations: Iterable[BatchOperation]) -> int:
        """
        Commit operations in Firestore batches of at most FIRESTORE_BATCH_LIMIT writes.

        Each batch is atomic on its own. Nothing is committed for an empty list.

        Returns:
            int: number of batches committed
        """
        operations = list(operations)
        commits = 0
        limit = environment.FIRESTORE_BATCH_LIMIT

        for start in range(0, len(operations), limit):
            batch = self.db.batch()
            for operation, ref, data in operations[start:start + limit]:
                if operation == 'set':
                    batch.set(ref, data)
                elif operation == 'update':
                    batch.update(ref, data)
                elif operation == 'delete':
                    batch.delete(ref)
                else:
                    raise ValueError(f"Unsupported batch operation: {operation}")
            batch.commit()
            commits += 1

        return commits

    def commit_or_discard(self, operations: Iterable[BatchOperation]) -> int:
        """
        Commit 'set' operations in batches as one unit.

        If a batch fails, the documents written by the batches before it are
        deleted again and the original error is re-raised, so nothing from a
        failed call stays in the store.

        Returns:
            int: number of batches committed
        """
        operations = list(operations)
        if any(operation != 'set' for operation, _, _ in operations):
            raise ValueError("commit_or_discard only accepts 'set' operations")

        limit = environment.FIRESTORE_BATCH_LIMIT
        committed = []
        commits = 0

        try:
            for start in range(0, len(operations), limit):
                chunk = operations[start:start + limit]
                commits += self.commit_in_batches(chunk)
                committed.extend(chunk)
        except Exception as e:
            if committed:
                logger.warning(f"Batch commit failed ({e}), discarding {len(committed)} documents already written")
                try:
                    self.commit_in_batches(('delete', ref, None) for _, ref, _ in committed)
                except Exception as cleanup_error:
                    logger.error(f"Failed to discard partially written documents: {cleanup_error}")
            raise

        return commits

    def delete_snapshots(self, snapshots: Iterable[Any]) -> int:
        """Batch-delete the documents behind the given snapshots"""
        snapshots = list(snapshots)
        self.commit_in_batches(('delete', snapshot.reference, None) for snapshot in snapshots)
        return len(snapshots)
