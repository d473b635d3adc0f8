"""
Database Service - thin async wrapper over Firestore.

Every method returns a tuple whose first element says whether the call
succeeded; errors are logged and returned as text instead of raised, so
services decide how a failed read or write surfaces to the caller.
"""

from typing import Any, Dict, List, Optional, Sequence, Tuple, Union
from datetime import datetime
import logging

from google.cloud.firestore_v1 import ArrayRemove, ArrayUnion, FieldFilter, Query
from google.cloud.firestore_v1.field_path import FieldPath

from .firestore_client import get_firestore_client

logger = logging.getLogger(__name__)

# Firestore rejects batches above this size
MAX_BATCH_OPERATIONS = 500

FieldPathKey = Union[str, Tuple[str, ...]]


def _field_path(key: FieldPathKey) -> str:
    """Render a field path; tuple segments are quoted so ids with dots stay one key."""
    if isinstance(key, tuple):
        return FieldPath(*key).to_api_repr()
    return key


def _snapshot_to_dict(doc) -> Dict[str, Any]:
    data = doc.to_dict() or {}
    data['id'] = doc.id
    data['_doc_id'] = doc.id
    return data


class DatabaseService:
    def __init__(self, client=None):
        self._client = client

    @property
    def db(self):
        if self._client is None:
            self._client = get_firestore_client()
        return self._client

    async def get_document(self, collection: str, document_id: str) -> Tuple[bool, Optional[Dict[str, Any]], Optional[str]]:
        try:
            doc = self.db.collection(collection).document(document_id).get()
            if not doc.exists:
                return False, None, f"Document {document_id} not found in {collection}"
            return True, _snapshot_to_dict(doc), None
        except Exception as e:
            logger.error(f"Error reading {collection}/{document_id}: {str(e)}")
            return False, None, str(e)

    async def query_documents(
        self,
        collection: str,
        filters: Optional[List[Tuple[str, str, Any]]] = None,
        order_by: Optional[Union[str, List[Tuple[str, str]]]] = None,
        limit: Optional[int] = None,
    ) -> Tuple[bool, List[Dict[str, Any]], Optional[str]]:
        """
        Run a query. ``filters`` are ``(field, op, value)`` triples,
        ``order_by`` is a field name or a list of ``(field, 'asc'|'desc')``.
        """
        try:
            query = self.db.collection(collection)

            for field, op, value in filters or []:
                query = query.where(filter=FieldFilter(field, op, value))

            if isinstance(order_by, str):
                order_by = [(order_by, 'asc')]
            for field, direction in order_by or []:
                query = query.order_by(
                    field,
                    direction=Query.DESCENDING if direction == 'desc' else Query.ASCENDING
                )

            if limit:
                query = query.limit(limit)

            return True, [_snapshot_to_dict(doc) for doc in query.stream()], None
        except Exception as e:
            logger.error(f"Error querying {collection}: {str(e)}")
            return False, [], str(e)

    async def create_document(
        self,
        collection: str,
        data: Dict[str, Any],
        document_id: Optional[str] = None,
    ) -> Tuple[bool, Optional[str], Optional[str]]:
        try:
            payload = dict(data)
            payload.setdefault('createdAt', datetime.now().isoformat())
            if document_id:
                doc_ref = self.db.collection(collection).document(document_id)
            else:
                doc_ref = self.db.collection(collection).document()
            doc_ref.set(payload)
            return True, doc_ref.id, None
        except Exception as e:
            logger.error(f"Error creating document in {collection}: {str(e)}")
            return False, None, str(e)

    async def update_document(
        self,
        collection: str,
        document_id: str,
        data: Dict[FieldPathKey, Any],
    ) -> Tuple[bool, Optional[str]]:
        try:
            payload = {_field_path(key): value for key, value in data.items()}
            self.db.collection(collection).document(document_id).update(payload)
            return True, None
        except Exception as e:
            logger.error(f"Error updating {collection}/{document_id}: {str(e)}")
            return False, str(e)

    async def delete_document(self, collection: str, document_id: str) -> Tuple[bool, Optional[str]]:
        try:
            self.db.collection(collection).document(document_id).delete()
            return True, None
        except Exception as e:
            logger.error(f"Error deleting {collection}/{document_id}: {str(e)}")
            return False, str(e)

    async def array_union(
        self,
        collection: str,
        document_id: str,
        values: Dict[FieldPathKey, Sequence[Any]],
    ) -> Tuple[bool, Optional[str]]:
        """Atomically add values to array fields, skipping ones already present."""
        return await self.update_document(
            collection,
            document_id,
            {key: ArrayUnion(list(items)) for key, items in values.items()},
        )

    async def array_remove(
        self,
        collection: str,
        document_id: str,
        values: Dict[FieldPathKey, Sequence[Any]],
    ) -> Tuple[bool, Optional[str]]:
        """Atomically remove every occurrence of the given values from array fields."""
        return await self.update_document(
            collection,
            document_id,
            {key: ArrayRemove(list(items)) for key, items in values.items()},
        )

    async def batch_write(self, operations: List[Dict[str, Any]]) -> Tuple[bool, Optional[str]]:
        """
        Commit ``{'op': 'set'|'update'|'delete', 'collection', 'document_id', 'data'}``
        operations, at most MAX_BATCH_OPERATIONS per commit.
        """
        try:
            for start in range(0, len(operations), MAX_BATCH_OPERATIONS):
                batch = self.db.batch()
                for operation in operations[start:start + MAX_BATCH_OPERATIONS]:
                    ref = self.db.collection(operation['collection']).document(operation['document_id'])
                    if operation['op'] == 'delete':
                        batch.delete(ref)
                    elif operation['op'] == 'set':
                        batch.set(ref, operation['data'])
                    else:
                        batch.update(ref, {_field_path(k): v for k, v in operation['data'].items()})
                batch.commit()
            return True, None
        except Exception as e:
            logger.error(f"Batch write failed: {str(e)}")
            return False, str(e)


database_service = DatabaseService()
