"""
Tests for VectorRecord and record identifiers.
"""

import uuid

import numpy as np
from hnswdb.record import VectorRecord, new_record_id


def test_new_record_id_is_uuid4():
    """Identifiers are random UUIDs and never repeat"""
    ids = {new_record_id() for _ in range(100)}

    assert len(ids) == 100
    assert all(uuid.UUID(i).version == 4 for i in ids)


def test_record_dimension_and_summary():
    """summary() omits the vector"""
    record = VectorRecord(
        id="r1", vector=np.zeros(5, dtype=np.float32), source="a.txt", text="hello"
    )

    assert record.dimension == 5
    assert record.summary() == {"id": "r1", "source": "a.txt", "text": "hello"}
    assert "dim=5" in repr(record)
