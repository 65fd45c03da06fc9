from bson import ObjectId

from app.services.mongo_service import STATUS_REJECTED, GenerationLogService


class FakeInsertResult:
    def __init__(self, inserted_id):
        self.inserted_id = inserted_id


class FakeCollection:
    def __init__(self):
        self.docs = []

    def insert_one(self, doc):
        self.docs.append(doc)
        return FakeInsertResult(ObjectId())


def test_insert_stores_raw_response_with_status():
    collection = FakeCollection()
    service = GenerationLogService(collection=collection)

    log_id = service.insert("backend", "not json", STATUS_REJECTED, error="bad json")

    assert ObjectId.is_valid(log_id)
    doc = collection.docs[0]
    assert doc["domain"] == "backend"
    assert doc["raw_response"] == "not json"
    assert doc["status"] == "rejected"
    assert doc["error"] == "bad json"
    assert "created_at" in doc
