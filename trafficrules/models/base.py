"""
Columns shared by every table: UUID primary key and audit timestamps.
"""

import uuid
from sqlalchemy import Column, DateTime, Uuid, func

from trafficrules.db.database import Base


class BaseModel(Base):
    """
    Abstract parent of all models.

    `id` uses the generic Uuid type (native UUID on PostgreSQL, CHAR(32)
    on SQLite) and is generated client-side, so inserts never depend on a
    database extension.
    """
    __abstract__ = True

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4, nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self):
        return f"<{self.__class__.__name__}(id={self.id})>"
