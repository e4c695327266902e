# storage.py
"""
Attempt stores: where submitted review sessions are persisted.

A store only has to provide save(record) -> attempt_id.
"""
import json
import logging
import os
import tempfile
import time
import uuid

logger = logging.getLogger(__name__)


def new_attempt_id():
    return f"attempt_{int(time.time() * 1000)}_{uuid.uuid4().hex[:8]}"


class InMemoryAttemptStore:
    """Keeps records in a list; used by tests and interactive sessions."""

    def __init__(self):
        self.records = []

    def save(self, record):
        attempt_id = new_attempt_id()
        self.records.append({'id': attempt_id, **record})
        return attempt_id

    def load_all(self):
        return list(self.records)


class JsonAttemptStore:
    """
    Appends records to a JSON array file.

    The file is rewritten through a temporary file in the same directory so
    a failed write never leaves a truncated store behind.
    """

    def __init__(self, path):
        self.path = str(path)

    def load_all(self):
        if not os.path.exists(self.path):
            return []
        with open(self.path, 'r', encoding='utf-8') as f:
            records = json.load(f)
        if not isinstance(records, list):
            raise ValueError(f"Attempt store {self.path} does not hold a JSON array")
        return records

    def save(self, record):
        records = self.load_all()
        attempt_id = new_attempt_id()
        records.append({'id': attempt_id, **record})

        directory = os.path.dirname(os.path.abspath(self.path))
        os.makedirs(directory, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=directory, suffix='.tmp')
        try:
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                json.dump(records, f, ensure_ascii=False, indent=2)
            os.replace(tmp_path, self.path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise

        logger.info("Saved %s to %s", attempt_id, self.path)
        return attempt_id
