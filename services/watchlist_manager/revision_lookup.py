"""
SQL-backed revision lookup.
"""

from typing import Optional

from sqlalchemy import and_
from sqlalchemy.orm import Session

from shared.database.models import Revision as RevisionRecord
from shared.utilities.validators import validate_timestamp

from .entities import PageReference, Revision
from .interfaces import READ_LATEST, READ_NORMAL


class SqlRevisionLookup:
    """Reads the ``revision`` table. Revisions of a page are ordered by id."""

    def __init__(self, db_session: Session):
        self.db = db_session

    @staticmethod
    def _to_revision(record: RevisionRecord) -> Revision:
        return Revision(
            rev_id=record.rev_id,
            page=PageReference(record.rev_namespace, record.rev_title),
            timestamp=record.rev_timestamp
        )

    def get_revision_by_id(self, rev_id: int, flags: int = READ_NORMAL) -> Optional[Revision]:
        if flags & READ_LATEST:
            # Don't serve a stale row from the identity map
            self.db.expire_all()
        record = self.db.get(RevisionRecord, rev_id)
        return self._to_revision(record) if record else None

    def get_next_revision(self, revision: Revision) -> Optional[Revision]:
        record = self.db.query(RevisionRecord).filter(
            and_(
                RevisionRecord.rev_namespace == revision.page.namespace,
                RevisionRecord.rev_title == revision.page.db_key,
                RevisionRecord.rev_id > revision.rev_id
            )
        ).order_by(RevisionRecord.rev_id).first()
        return self._to_revision(record) if record else None

    def insert_revision(self, page: PageReference, timestamp: str) -> Revision:
        """Record a new revision of a page."""
        if not validate_timestamp(timestamp):
            raise ValueError(f"Invalid revision timestamp: {timestamp!r}")
        record = RevisionRecord(rev_namespace=page.namespace, rev_title=page.db_key, rev_timestamp=timestamp)
        self.db.add(record)
        self.db.commit()
        return self._to_revision(record)
