# modules/assessment/snapshots.py
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from sqlalchemy.exc import SQLAlchemyError

from models import AssessmentSnapshot, db
from modules.common.errors import RemoteCallError

log = logging.getLogger(__name__)

ASSESSMENT_KEY = "assessmentData"


class SnapshotStore:
    """
    One current snapshot per (user, key). `put` overwrites, nothing is
    appended and no history is kept; the last write wins.
    """

    def __init__(self, user_id: str):
        self.user_id = user_id

    def _row(self, key: str) -> Optional[AssessmentSnapshot]:
        return AssessmentSnapshot.query.filter_by(user_id=self.user_id, key=key).first()

    def get(self, key: str = ASSESSMENT_KEY) -> Optional[Dict[str, Any]]:
        try:
            row = self._row(key)
        except SQLAlchemyError as e:
            db.session.rollback()
            raise RemoteCallError("Could not load your assessment results.") from e
        return dict(row.payload) if row and row.payload else None

    def put(self, payload: Dict[str, Any], key: str = ASSESSMENT_KEY) -> None:
        try:
            row = self._row(key)
            if row is None:
                row = AssessmentSnapshot(user_id=self.user_id, key=key)
                db.session.add(row)
            row.payload = dict(payload)
            db.session.commit()
        except SQLAlchemyError as e:
            db.session.rollback()
            log.exception("Snapshot write failed user=%s key=%s", self.user_id, key)
            raise RemoteCallError("Could not save your assessment results.") from e

    def clear(self, key: str = ASSESSMENT_KEY) -> None:
        row = self._row(key)
        if row is not None:
            db.session.delete(row)
            db.session.commit()
