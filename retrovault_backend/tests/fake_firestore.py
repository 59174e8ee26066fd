"""
In-memory stand-in for the Firestore client used by the unit tests.

Implements the subset of google.cloud.firestore.Client the backend touches:
collections, document refs, add/set/update/delete, equality queries (including
FieldFilter), streaming and write batches. Documents are keyed by full path,
so subcollections behave like Firestore: deleting a parent leaves them alone.

Failure injection: fail_writes_to(collection_path) makes every write to that
collection raise ServiceUnavailable; fail_reads_of(collection_path) does the
same for reads; fail_commit(n) rejects the nth batch commit from now on.
"""

import copy
import uuid
from datetime import datetime, timezone

from google.api_core.exceptions import NotFound, ServiceUnavailable


def _parent_path(path):
    return path.rsplit('/', 1)[0]


def _lookup(data, field_path):
    value = data
    for part in field_path.split('.'):
        if not isinstance(value, dict) or part not in value:
            return None
        value = value[part]
    return value


def _deep_merge(target, source):
    for key, value in source.items():
        if isinstance(value, dict) and isinstance(target.get(key), dict):
            _deep_merge(target[key], value)
        else:
            target[key] = copy.deepcopy(value)


class FakeSnapshot:
    def __init__(self, reference, data):
        self.reference = reference
        self.id = reference.id
        self._data = data

    @property
    def exists(self):
        return self._data is not None

    def to_dict(self):
        return copy.deepcopy(self._data) if self._data is not None else None

    def get(self, field_path):
        return _lookup(self._data or {}, field_path)


class FakeDocumentReference:
    def __init__(self, client, path):
        self._client = client
        self.path = path
        self.id = path.rsplit('/', 1)[-1]

    def collection(self, name):
        return FakeCollectionReference(self._client, f"{self.path}/{name}")

    def get(self):
        self._client._check_read(_parent_path(self.path))
        self._client.read_count += 1
        return FakeSnapshot(self, self._client._docs.get(self.path))

    def set(self, data, merge=False):
        self._client._apply('set', self, data, merge=merge)

    def update(self, data):
        self._client._apply('update', self, data)

    def delete(self):
        self._client._apply('delete', self, None)


class FakeQuery:
    def __init__(self, client, path, filters=None):
        self._client = client
        self._path = path
        self._filters = list(filters or [])

    def where(self, field_path=None, op_string=None, value=None, *, filter=None):
        if filter is not None:
            field_path, op_string, value = filter.field_path, filter.op_string, filter.value
        if op_string != '==':
            raise NotImplementedError(f"FakeFirestore only supports '==' filters, got {op_string}")
        return FakeQuery(self._client, self._path, self._filters + [(field_path, value)])

    def stream(self):
        self._client._check_read(self._path)
        self._client.read_count += 1
        for path, data in list(self._client._docs.items()):
            if _parent_path(path) != self._path:
                continue
            if all(_lookup(data, field) == value for field, value in self._filters):
                yield FakeSnapshot(FakeDocumentReference(self._client, path), data)

    def get(self):
        return list(self.stream())


class FakeCollectionReference(FakeQuery):
    def __init__(self, client, path):
        super().__init__(client, path)
        self.id = path.rsplit('/', 1)[-1]

    def document(self, document_id=None):
        document_id = document_id or uuid.uuid4().hex[:20]
        return FakeDocumentReference(self._client, f"{self._path}/{document_id}")

    def add(self, data, document_id=None):
        ref = self.document(document_id)
        ref.set(data)
        return datetime.now(timezone.utc), ref


class FakeWriteBatch:
    def __init__(self, client):
        self._client = client
        self._operations = []

    def set(self, reference, data, merge=False):
        self._operations.append(('set', reference, data, merge))

    def update(self, reference, data):
        self._operations.append(('update', reference, data, False))

    def delete(self, reference):
        self._operations.append(('delete', reference, None, False))

    def commit(self):
        self._client.commit_attempts += 1
        if self._client.commit_attempts in self._client._failing_commits:
            raise ServiceUnavailable(f"Commit {self._client.commit_attempts} rejected")
        # All-or-nothing: validate every write before applying any
        for operation, reference, data, merge in self._operations:
            self._client._check_write(_parent_path(reference.path))
            if operation == 'update' and reference.path not in self._client._docs:
                raise NotFound(f"No document to update: {reference.path}")
        for operation, reference, data, merge in self._operations:
            self._client._apply(operation, reference, data, merge=merge)
        self._client.batch_commits += 1
        return []


class FakeFirestore:
    def __init__(self):
        self._docs = {}
        self._failing_writes = set()
        self._failing_reads = set()
        self.write_count = 0
        self.read_count = 0
        self.batch_commits = 0
        self.commit_attempts = 0
        self._failing_commits = set()

    # ---- client API ----

    def collection(self, path):
        return FakeCollectionReference(self, path)

    def document(self, path):
        return FakeDocumentReference(self, path)

    def batch(self):
        return FakeWriteBatch(self)

    # ---- failure injection ----

    def fail_writes_to(self, collection_path):
        self._failing_writes.add(collection_path)

    def fail_reads_of(self, collection_path):
        self._failing_reads.add(collection_path)

    def fail_commit(self, attempt):
        """Reject the Nth batch commit (1-based, counted from now on)"""
        self._failing_commits.add(self.commit_attempts + attempt)

    def _check_write(self, collection_path):
        if collection_path in self._failing_writes:
            raise ServiceUnavailable(f"Write rejected for {collection_path}")

    def _check_read(self, collection_path):
        if collection_path in self._failing_reads:
            raise ServiceUnavailable(f"Read rejected for {collection_path}")

    # ---- storage ----

    def _apply(self, operation, reference, data, merge=False):
        self._check_write(_parent_path(reference.path))
        path = reference.path

        if operation == 'set':
            if merge and path in self._docs:
                _deep_merge(self._docs[path], data)
            else:
                self._docs[path] = copy.deepcopy(data)
        elif operation == 'update':
            if path not in self._docs:
                raise NotFound(f"No document to update: {path}")
            document = self._docs[path]
            for field_path, value in data.items():
                target = document
                parts = field_path.split('.')
                for part in parts[:-1]:
                    target = target.setdefault(part, {})
                target[parts[-1]] = copy.deepcopy(value)
        elif operation == 'delete':
            self._docs.pop(path, None)

        self.write_count += 1

    # ---- test helpers ----

    def seed(self, path, data):
        """Write a document without counting it as an application write"""
        self._docs[path] = copy.deepcopy(data)

    def documents(self, collection_path, **filters):
        """Plain dicts (with 'id') of the documents in a collection"""
        found = []
        for path, data in self._docs.items():
            if _parent_path(path) != collection_path:
                continue
            if all(_lookup(data, field) == value for field, value in filters.items()):
                found.append({'id': path.rsplit('/', 1)[-1], **copy.deepcopy(data)})
        return found

    def get_data(self, path):
        data = self._docs.get(path)
        return copy.deepcopy(data) if data is not None else None
