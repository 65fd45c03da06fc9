"""
MongoDB Service - audit log of raw model output.

Collections in this database:
1. quiz_generation_logs - every raw completion the model returned,
   tagged accepted/rejected

WHY MongoDB for these?
- The raw text is whatever the model produced, valid JSON or not
- Operators read these when a domain keeps failing generation
"""

from datetime import datetime
from typing import Optional
from pymongo.collection import Collection

from app.db.mongodb import get_collection, COLLECTIONS

STATUS_ACCEPTED = "accepted"
STATUS_REJECTED = "rejected"


# ============================================================
# QUIZ GENERATION LOGS COLLECTION
# ============================================================

class GenerationLogService:
    """
    Stores raw model responses for quiz generation.
    """

    def __init__(self, collection: Optional[Collection] = None):
        self.collection: Collection = (
            collection if collection is not None
            else get_collection(COLLECTIONS["generation_logs"])
        )

    def insert(self, domain: str, raw_response: str, status: str, error: str = None) -> str:
        """
        Insert a generation log entry.

        Args:
            domain: Quiz domain the model was asked about
            raw_response: Completion text exactly as returned
            status: 'accepted' or 'rejected'
            error: Validation error for rejected responses

        Returns:
            MongoDB ObjectId as string
        """
        doc = {
            "domain": domain,
            "raw_response": raw_response,
            "status": status,
            "error": error,
            "created_at": datetime.utcnow()
        }
        result = self.collection.insert_one(doc)
        return str(result.inserted_id)

